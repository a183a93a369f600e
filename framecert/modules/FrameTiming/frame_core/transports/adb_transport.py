"""
ADB Transport

Runs device commands through the ``adb`` executable using asyncio
subprocesses, so a slow device never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import shutil
from pathlib import Path
from typing import Optional, Sequence

from framecert.core.logging_utils import get_module_logger
from ...constants import DEFAULT_COMMAND_TIMEOUT_S
from .base_transport import DeviceCommandTransport, DeviceNotAvailableError

logger = get_module_logger(__name__)


class AdbTransport(DeviceCommandTransport):
    """
    Command channel backed by ``adb -s <serial>``.

    Example:
        transport = AdbTransport("emulator-5554")
        if await transport.connect():
            text = await transport.execute_shell_command("dumpsys SurfaceFlinger --latency")
    """

    def __init__(
        self,
        serial: str,
        *,
        adb_path: Optional[str] = None,
        default_timeout: float = DEFAULT_COMMAND_TIMEOUT_S,
    ):
        """
        Initialize the transport.

        Args:
            serial: Device serial as listed by ``adb devices``
            adb_path: adb executable, looked up on PATH when omitted
            default_timeout: Seconds allowed per command when none is given
        """
        super().__init__(serial)
        self.adb_path = adb_path or shutil.which("adb") or "adb"
        self.default_timeout = default_timeout

    async def _run(self, *args: str, timeout: Optional[float] = None) -> str:
        cmd = [self.adb_path, "-s", self.device, *args]
        limit = self.default_timeout if timeout is None else timeout
        logger.debug("Running %s", " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise DeviceNotAvailableError(f"adb executable not found: {self.adb_path}", device=self.device) from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            with contextlib.suppress(Exception):
                await process.wait()
            raise DeviceNotAvailableError(
                f"adb {args[0]} timed out after {limit:.1f}s", device=self.device
            ) from exc

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise DeviceNotAvailableError(
                f"adb {args[0]} failed ({process.returncode}): {message}", device=self.device
            )

        return stdout.decode("utf-8", errors="replace")

    async def connect(self) -> bool:
        try:
            state = (await self._run("get-state", timeout=5.0)).strip()
        except DeviceNotAvailableError as exc:
            logger.warning("Device %s not reachable: %s", self.device, exc)
            self._connected = False
            return False

        self._connected = state == "device"
        if not self._connected:
            logger.warning("Device %s reports state %r", self.device, state)
        return self._connected

    async def execute_shell_command(self, command: str, timeout: Optional[float] = None) -> str:
        return await self._run("shell", command, timeout=timeout)

    async def push_file(self, local_path: Path, remote_path: str) -> None:
        await self._run("push", str(local_path), remote_path)
        logger.debug("Pushed %s to %s:%s", local_path, self.device, remote_path)

    async def pull_file(self, remote_path: str, local_path: Path) -> Path:
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        await self._run("pull", remote_path, str(local_path))
        logger.debug("Pulled %s:%s to %s", self.device, remote_path, local_path)
        return local_path

    async def install_package(self, package_path: Path, options: Sequence[str] = ()) -> None:
        output = await self._run("install", *options, str(package_path), timeout=max(self.default_timeout, 120.0))
        if "Success" not in output:
            raise DeviceNotAvailableError(f"Install of {package_path} failed: {output.strip()}", device=self.device)
        logger.info("Installed %s on %s", Path(package_path).name, self.device)

    async def uninstall_package(self, package_name: str) -> None:
        await self._run("uninstall", package_name)
        logger.info("Uninstalled %s from %s", package_name, self.device)
