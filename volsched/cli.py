"""volume-scheduler daemon entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

from . import __version__, systemd_notify
from .audio import DEFAULT_SINK, PactlVolumeControl, pactl_available
from .config import DEFAULT_CONFIG_PATH, RuntimeConfig, load_schedule
from .mqtt import StatusMqtt
from .scheduler import VolumeScheduler
from .worker import InvocationWorker

LOGGER = logging.getLogger("volsched")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="volume-scheduler",
        description="Ramp the sink volume to scheduled levels at configured times of day.",
    )
    parser.add_argument("config", nargs="?", default=str(DEFAULT_CONFIG_PATH), help="Path to the TOML schedule")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $VOLSCHED_LOG_LEVEL or INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    runtime = RuntimeConfig.from_env()
    log_level = (args.log_level or runtime.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not pactl_available():
        LOGGER.error("pactl not found on PATH; install pulseaudio-utils or pipewire-pulse")
        return 1

    schedule, file_config = load_schedule(args.config)
    sink = file_config.sink if file_config else DEFAULT_SINK
    policy = runtime.failure_policy or (file_config.failure_policy if file_config else "stop")

    control = PactlVolumeControl(sink, timeout=runtime.pactl_timeout)
    mqtt = StatusMqtt(runtime.mqtt)
    mqtt.connect()
    scheduler = VolumeScheduler(schedule, InvocationWorker(control), failure_policy=policy, publisher=mqtt)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    LOGGER.info("Controlling %s with %d targets (%s policy)", sink, len(schedule), policy)
    systemd_notify.ready()
    try:
        ok = await scheduler.run(stop_event)
    finally:
        systemd_notify.stopping()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        mqtt.disconnect()
    return 0 if ok else 1


def run() -> None:
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)
