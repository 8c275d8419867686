from timesync.logging._timesync_logger import TIMESYNC_LOGGER

__all__ = ["TIMESYNC_LOGGER"]
