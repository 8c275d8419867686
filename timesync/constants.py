"""Application-wide constants for timesync.

This module contains all shared constants used across different parts of the application.
Centralizing these values prevents duplication and circular import issues.
"""

# ============================================================================
# TIME SOURCES
# ============================================================================
DEFAULT_SOURCES = ["0.pool.ntp.org", "1.pool.ntp.org", "2.pool.ntp.org"]
NTP_PORT = 123
NTP_VERSION = 3
DEFAULT_SOURCE_TIMEOUT_SECONDS = 5.0

# ============================================================================
# SYNCHRONIZATION POLICY
# ============================================================================
DEFAULT_RETRIES = 3
DEFAULT_INTERVAL_MS = 1000
DEFAULT_PERIODICITY_MINUTES = 60

# Timestamp meaning "never synchronized"
NEVER = 0

# Reported in place of a sync time before the first successful sync
INVALID_TIME_TEXT = "invalid time"

# ============================================================================
# WEB SERVER
# ============================================================================
DEFAULT_WEB_HOST = "0.0.0.0"
DEFAULT_WEB_PORT = 24873
API_PREFIX = "/api/timesync"
