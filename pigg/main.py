# pigg/main.py

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pigg.application.control_surface import ControlSurface
from pigg.core.logging_config import VERBOSITY_LEVELS, configure_logging

logger = logging.getLogger("pigg.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pigg",
        description="Headless pigg control surface: load a pin configuration and apply it to hardware",
    )
    parser.add_argument("config_file", nargs="?", help="Pin configuration to load on start")
    parser.add_argument("--node-id", help="Node id of a remote piglet to connect to")
    parser.add_argument("--relay", default="", help="Relay URL to reach the piglet through")
    parser.add_argument("--local", action="store_true", help="Drive this machine's GPIO pins")
    parser.add_argument(
        "-v",
        "--verbosity",
        choices=sorted(VERBOSITY_LEVELS),
        help="Log level (default: error)",
    )
    return parser


def report_status(surface: ControlSurface) -> None:
    while surface.status.current_message is not None:
        message = surface.status.current_message
        print(f"[{message.level.name}] {message.text}", flush=True)
        if message.details:
            print(f"    {message.details}", flush=True)
        surface.status.clear_message()


async def main(args: argparse.Namespace) -> int:
    configure_logging(args.verbosity)

    surface = ControlSurface()

    if args.config_file:
        surface.load_config(args.config_file)

    runner = asyncio.create_task(surface.run())

    try:
        if args.node_id:
            if not await surface.connect_remote(args.node_id, args.relay):
                print(f"pigg: {surface.connect_dialog.connection_error}", file=sys.stderr)
                report_status(surface)
                return 1
        elif args.local:
            await surface.use_local()

        logger.info("pigg started, hardware target: %s", surface.target)
        print(f"pigg: {surface.target}", flush=True)

        while True:
            report_status(surface)
            await asyncio.sleep(0.5)

    except asyncio.CancelledError:
        pass

    finally:
        await surface.stop()
        runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass
        logger.info("pigg stopped.")

    return 0


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(main(args))
    except KeyboardInterrupt:
        logger.info("pigg stopping due to keyboard interrupt.")
        return 0


if __name__ == "__main__":
    sys.exit(run())
