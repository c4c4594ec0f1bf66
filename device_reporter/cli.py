"""
Device Reporter - Command Line Entry Point

Snapshots local disk, CPU and memory usage and publishes it over MQTT,
either once or at a fixed interval until interrupted.

Usage:
    device-reporter [CONFIG]
"""

import argparse
import sys
from typing import List, Optional

import structlog

from . import __version__
from .config import RuntimeMode, load_config
from .errors import ReporterError
from .log import setup_logging
from .mqtt.publisher import MqttPublisher
from .runner.scheduler import Scheduler
from .runner.shutdown import ShutdownController
from .telemetry.builder import ReportBuilder
from .telemetry.provider import PsutilMetricsProvider

logger = structlog.get_logger(__name__)


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="device-reporter",
        description="Publish host disk, CPU and memory usage over MQTT",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=None,
        help="Path to a YAML or JSON configuration file (defaults: Single mode)",
    )
    return parser.parse_args(argv)


def run(config_path: Optional[str] = None) -> None:
    """Load configuration, wire the components and run to completion."""
    setup_logging()
    config = load_config(config_path)
    setup_logging(config.log_level)

    logger.info(
        "Running Device Stats Reporter",
        version=__version__,
        mode=config.mode.value,
        device_id=config.device_id,
    )

    publisher = MqttPublisher.from_config(config)
    builder = ReportBuilder(PsutilMetricsProvider())
    scheduler = Scheduler(config, builder, publisher)

    if config.mode == RuntimeMode.SINGLE:
        scheduler.start()
    else:
        with ShutdownController(scheduler.token):
            scheduler.start()
            scheduler.join()

    logger.info("Run complete")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit status."""
    args = _parse_args(argv)

    try:
        run(args.config)
    except ReporterError as e:
        print(f"Error running Device Stats Reporter ({e.kind.value}): {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
