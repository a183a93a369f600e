"""
Base Transport

Abstract base class defining the command channel to a target device.
The sampler only ever issues shell commands and reads their text output.
The collector pulls the lifecycle event log with ``pull_file``. Pushing files
and installing or removing packages are there for whatever prepares the
workload on the device; nothing in framecert calls them.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence


class DeviceNotAvailableError(OSError):
    """The device could not be reached or a command did not complete."""

    def __init__(self, message: str, *, device: Optional[str] = None):
        super().__init__(message)
        self.device = device


class DeviceCommandTransport(ABC):
    """
    Abstract base class for device command channels.

    Implementations raise DeviceNotAvailableError for every transient failure
    (unreachable device, command timeout, missing tool) so callers have a
    single exception to treat as "no data this time".
    """

    def __init__(self, device: str = ""):
        """Initialize the transport."""
        self.device = device
        self._connected = False

    @property
    def is_connected(self) -> bool:
        """Check if the device answered the last connectivity check."""
        return self._connected

    @abstractmethod
    async def connect(self) -> bool:
        """
        Check that the device is reachable.

        Returns:
            True if the device is online
        """
        ...

    async def disconnect(self) -> None:
        """Release any resources held for the device."""
        self._connected = False

    @abstractmethod
    async def execute_shell_command(self, command: str, timeout: Optional[float] = None) -> str:
        """
        Run a shell command on the device.

        Args:
            command: Command line executed by the device shell
            timeout: Seconds before the command is abandoned

        Returns:
            The command's standard output as text
        """
        ...

    @abstractmethod
    async def push_file(self, local_path: Path, remote_path: str) -> None:
        """Copy a host file onto the device."""
        ...

    @abstractmethod
    async def pull_file(self, remote_path: str, local_path: Path) -> Path:
        """
        Copy a device file to the host.

        Returns:
            The local path written
        """
        ...

    @abstractmethod
    async def install_package(self, package_path: Path, options: Sequence[str] = ()) -> None:
        """Install an application package on the device."""
        ...

    @abstractmethod
    async def uninstall_package(self, package_name: str) -> None:
        """Remove an installed application from the device."""
        ...

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
        return False
