from timesync.settings._timesync_settings import TimeSyncSettings
from timesync.settings.settings_file_manager import SettingsFileManager

__all__ = ["SettingsFileManager", "TimeSyncSettings"]
