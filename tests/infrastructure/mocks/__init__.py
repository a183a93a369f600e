from .device_mocks import MockDeviceTransport

__all__ = ["MockDeviceTransport"]
