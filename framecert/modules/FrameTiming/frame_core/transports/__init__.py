"""Device command channels."""

from .base_transport import DeviceCommandTransport, DeviceNotAvailableError
from .adb_transport import AdbTransport

__all__ = ["DeviceCommandTransport", "DeviceNotAvailableError", "AdbTransport"]
