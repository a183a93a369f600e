"""``framecert`` command: sample one application run and certify it."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
from typing import Optional

from framecert.core.logging_utils import get_module_logger
from framecert.core.paths import DEFAULT_CONFIG_PATH
from framecert.modules.FrameTiming.config import FrameTimingConfig
from framecert.modules.FrameTiming.frame_core.collector import FrameTimingCollector, RunResult
from framecert.modules.FrameTiming.frame_core.transports import AdbTransport
from framecert.modules.FrameTiming.metrics.requirements import CertificationRequirements

from .common import (
    add_common_cli_arguments,
    install_exception_handlers,
    install_signal_handlers,
    log_run_startup,
    positive_float,
    setup_cli_logging,
)

logger = get_module_logger("MainCLI")

EXIT_PASSED = 0
EXIT_FAILED = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="framecert",
        description="Sample SurfaceFlinger frame timing for one run and check it against certification requirements",
    )
    parser.add_argument("--serial", default=None, help="Device serial as listed by 'adb devices'")
    parser.add_argument("--layer", default=None, help="SurfaceFlinger layer name of the application window")
    parser.add_argument(
        "--duration",
        type=positive_float,
        required=True,
        help="Seconds to sample before ending the run",
    )
    parser.add_argument("--interval", type=positive_float, default=None, help="Seconds between polls")
    parser.add_argument(
        "--fixed-rate",
        action="store_true",
        default=False,
        help="Schedule polls at a fixed rate instead of a fixed delay",
    )
    parser.add_argument(
        "--requirements",
        default=None,
        help="Certification requirements file (key = value)",
    )
    parser.add_argument(
        "--event-log",
        default=None,
        help="Device path of the lifecycle event log to pull at the end of the run",
    )
    add_common_cli_arguments(parser, include_config=True)
    return parser


def load_config(args: argparse.Namespace) -> FrameTimingConfig:
    config_path = args.config or DEFAULT_CONFIG_PATH
    return FrameTimingConfig.load(config_path, args)


async def _wait_for_end(collector: FrameTimingCollector, stop_event: asyncio.Event, duration: float) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration
    while not stop_event.is_set() and not collector.sampler.is_terminated:
        remaining = deadline - loop.time()
        if remaining <= 0:
            break
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=min(remaining, 1.0))


async def run(args: argparse.Namespace, config: FrameTimingConfig) -> Optional[RunResult]:
    loop = asyncio.get_running_loop()
    install_exception_handlers(logger, loop)
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event, loop)

    requirements = CertificationRequirements.load(args.requirements) if args.requirements else None
    log_run_startup(logger, config, args.duration, requirements)

    async with AdbTransport(config.device_serial, default_timeout=config.command_timeout_s) as transport:
        if not transport.is_connected:
            logger.error("Device %s is not available", config.device_serial)
            return None

        collector = FrameTimingCollector(transport, config, requirements)
        await collector.on_run_start()
        try:
            await _wait_for_end(collector, stop_event, args.duration)
        finally:
            result = await collector.on_run_end()

    return result


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args)

    setup_cli_logging(args, config.log_level)

    if not config.layer_name:
        parser.error("a layer name is required (--layer or layer_name in the config file)")
    if not config.device_serial:
        parser.error("a device serial is required (--serial or device_serial in the config file)")

    try:
        result = asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_FAILED

    if result is None:
        return EXIT_FAILED

    print(str(result.summary))
    print(str(result.report))
    print(f"Frame timing certification: {'PASSED' if result.success else 'FAILED'}")
    return EXIT_PASSED if result.success else EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
