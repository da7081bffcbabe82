# pigg/piglet.py

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pigg.application.hardware_backend_service import HardwareBackendService
from pigg.core.logging_config import VERBOSITY_LEVELS, configure_logging
from pigg.domain.errors import ConfigParseError, ConnectionFailed, IdentityUnavailable, MalformedRelayHint
from pigg.infrastructure.config.hardware_config_repository import hardware_config_repository
from pigg.infrastructure.gpio.hardware import get_hardware
from pigg.infrastructure.transport.endpoint import PIGLET_ALPN, listen
from pigg.infrastructure.transport.identity import generate_identity
from pigg.interfaces.handlers.piglet_connection_handler import handle_connection

logger = logging.getLogger("pigg.piglet")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="piglet",
        description="Serve this board's GPIO pins to remote pigg control surfaces",
    )
    parser.add_argument("config_file", nargs="?", help="Pin configuration to apply on start")
    parser.add_argument(
        "-v",
        "--verbosity",
        choices=sorted(VERBOSITY_LEVELS),
        help="Log level (default: error)",
    )
    parser.add_argument("--relay", default="", help="Relay URL to listen on instead of the defaults")
    return parser


def load_start_config(backend: HardwareBackendService, config_file: Optional[str]) -> None:
    if not config_file:
        return

    try:
        config = hardware_config_repository.load(config_file)
    except (FileNotFoundError, ConfigParseError) as exc:
        logger.error("Could not load config %s: %s", config_file, exc)
        return

    backend.apply_config(config)
    logger.info("Applied config from %s", config_file)


async def main(args: argparse.Namespace) -> int:
    configure_logging(args.verbosity)

    backend = HardwareBackendService(get_hardware())
    description = backend.description()
    logger.info("Hardware: %s", description.details)

    load_start_config(backend, args.config_file)

    try:
        identity = generate_identity()
    except IdentityUnavailable as exc:
        logger.error("%s", exc)
        print(f"piglet: {exc}", file=sys.stderr)
        backend.close()
        return 1

    listener = None
    connection_tasks = set()

    try:
        listener = await listen(identity, PIGLET_ALPN, args.relay)

        print(f"nodeid: {identity.node_id}", flush=True)
        logger.info("piglet started, node id %s", identity.node_id)

        async for connection in listener:
            task = asyncio.create_task(handle_connection(connection, backend))
            connection_tasks.add(task)
            task.add_done_callback(connection_tasks.discard)

    except (ConnectionFailed, MalformedRelayHint) as exc:
        logger.error("piglet could not listen: %s", exc)
        print(f"piglet: {exc}", file=sys.stderr)
        return 1

    except asyncio.CancelledError:
        pass

    finally:
        for task in list(connection_tasks):
            task.cancel()
        if connection_tasks:
            await asyncio.gather(*connection_tasks, return_exceptions=True)

        if listener is not None:
            await listener.close()

        backend.close()
        logger.info("piglet stopped, GPIO released")

    return 0


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(main(args))
    except KeyboardInterrupt:
        logger.info("piglet stopping due to keyboard interrupt.")
        return 0


if __name__ == "__main__":
    sys.exit(run())
