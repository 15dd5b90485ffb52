#!/usr/bin/env python3
"""
Command-line front end for the WiFi picker engine.

    python -m wifi_picker --iface wlan0 list
    python -m wifi_picker --iface wlan0 connect AA:BB:CC:DD:EE:FF [--password secret]
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import List, Optional

from .core.config import PickerConfig, load_config
from .core.session import AppStateKind
from .engine import WifiPicker
from .paths import LOG_FILE
from .utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wifi-picker", description="Scan for and connect to WiFi networks")
    parser.add_argument("--iface", required=True, help="Wireless interface name, e.g. wlan0")
    parser.add_argument("--config", default=None, help="Path to picker configuration file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-file",
        nargs="?",
        const=str(LOG_FILE),
        default=None,
        help=f"Also write logs to this file (default when given without a path: {LOG_FILE})",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="Scan and list visible networks")
    connect = commands.add_parser("connect", help="Connect to a network by BSSID")
    connect.add_argument("bssid", help="Access point BSSID (colon hex)")
    connect.add_argument("--password", default=None, help="Password, prompted for if needed and omitted")
    return parser


def _is_settled(state) -> bool:
    return state.kind in (AppStateKind.IDLE, AppStateKind.PASSWORD_INPUT)


async def list_networks(picker: WifiPicker) -> int:
    await picker.orchestrator.wait_until(_is_settled)

    active_bssid = picker.session.active_connection_bssid
    for access_point in picker.session.catalog:
        marker = "*" if access_point.bssid == active_bssid else " "
        lock = "psk " if access_point.is_protected else "open"
        saved = " (saved)" if access_point.is_saved else ""
        print(
            f"{marker} {access_point.bssid}  {access_point.signal_strength:3d}%  "
            f"{access_point.frequency:5d} MHz  {lock}  {access_point.ssid}{saved}"
        )
    return 0


async def connect_network(picker: WifiPicker, bssid: str, password: Optional[str]) -> int:
    await picker.orchestrator.wait_until(_is_settled)

    index = picker.index_of(bssid)
    if index is None:
        logger.error(f"No access point with BSSID {bssid} in range")
        return 1
    access_point = picker.session.catalog.get(index)
    ssid = access_point.ssid
    if password is None and not access_point.is_protected:
        password = ""

    await picker.select(index)
    while True:
        state = await picker.orchestrator.wait_until(_is_settled)
        if state.kind == AppStateKind.IDLE:
            print(f"Connected to {ssid}")
            return 0

        if state.reason:
            print(f"Connecting to {ssid} failed: {picker.prompt()}")
        if password is None:
            if not sys.stdin.isatty():
                return 1
            password = await asyncio.get_running_loop().run_in_executor(
                None, getpass.getpass, f"Password for {ssid}: "
            )

        await picker.select(0, password)
        password = None


async def run(args: argparse.Namespace, config: PickerConfig) -> int:
    picker = WifiPicker(config)
    if not await picker.initialize(args.iface):
        return 1

    try:
        if args.command == "list":
            return await list_networks(picker)
        return await connect_network(picker, args.bssid, args.password)
    finally:
        await picker.teardown()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.debug, args.log_file)
    config = load_config(args.config)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
