#!/usr/bin/env python3
"""
Picking Robot Route Runner - Main Entry Point

Usage:
    picking-robot                       # Wait for commands (use --web to get any)
    picking-robot --web                 # Control via web interface
    picking-robot --route -NxAbc123     # Start playing a route immediately
    picking-robot --no-serial --web     # Remote node only, no device attached
"""

import argparse
import asyncio
import logging
import sys


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Picking Robot Route Runner")
    parser.add_argument(
        "--route",
        default=None,
        help="Route id to start playing on launch",
    )
    parser.add_argument(
        "--web",
        action="store_true",
        help="Enable web control interface",
    )
    parser.add_argument(
        "--serial-port",
        default=None,
        help="Serial port of the robot (overrides params.json)",
    )
    parser.add_argument(
        "--no-serial",
        action="store_true",
        help="Do not open the serial link",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Firebase Realtime Database URL (overrides params.json)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()

    # Setup logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Picking robot route runner starting...")

    from picking_robot.control import Controller
    from picking_robot.params import Parameters

    params = Parameters.load()
    if args.serial_port:
        params.update(serial_port=args.serial_port)
    if args.no_serial:
        params.update(serial_enabled=False)
    if args.database_url:
        params.update(database_url=args.database_url)

    controller = Controller(params=params)
    sys.exit(asyncio.run(controller.run(route_id=args.route, web=args.web)))


if __name__ == "__main__":
    main()
