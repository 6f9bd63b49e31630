"""
Command-line interface for blemgr.
"""

import argparse
import sys

from . import __version__
from blemgr.core.config import load_settings
from blemgr.core.errors import (
    AdapterNotFoundError,
    BlemgrError,
    BusUnavailableError,
    ConfigError,
    InvalidArgumentError,
)
from blemgr.core.log import init_logging, print_and_log, LOG__GENERAL

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INIT_FAILURE = 2


def parse_args(args=None):
    parser = argparse.ArgumentParser(
        description="blemgr - BlueZ LE device discovery and GATT interaction"
    )
    parser.add_argument("--version", action="version", version=f"blemgr {__version__}")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--adapter", help="Adapter name (e.g. hci0); default is the first found")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="mode", help="Operation mode")

    # Scan mode
    scan_parser = subparsers.add_parser("scan", help="Discover devices")
    scan_parser.add_argument("--timeout", type=float, default=None, help="Scan duration (s)")
    scan_parser.add_argument(
        "--filter",
        action="append",
        default=None,
        metavar="UUID",
        help="Only list devices advertising a service containing UUID (repeatable)",
    )

    # Known devices
    subparsers.add_parser("devices", help="List devices BlueZ already knows")

    chars_parser = subparsers.add_parser("chars", help="List characteristics of a device")
    chars_parser.add_argument("device", help="MAC address or device object path")

    connect_parser = subparsers.add_parser("connect", help="Connect to a device")
    connect_parser.add_argument("device", help="MAC address or device object path")

    disconnect_parser = subparsers.add_parser("disconnect", help="Disconnect a device")
    disconnect_parser.add_argument("device", help="MAC address or device object path")

    # GATT I/O
    read_parser = subparsers.add_parser("read", help="Read a characteristic value")
    read_parser.add_argument("char_path", help="Characteristic object path")

    write_parser = subparsers.add_parser("write", help="Write hex bytes to a characteristic")
    write_parser.add_argument("char_path", help="Characteristic object path")
    write_parser.add_argument("data", help="Hex payload, e.g. '01 02 03' or 010203")

    notify_parser = subparsers.add_parser("notify", help="Print notifications from a characteristic")
    notify_parser.add_argument("char_path", help="Characteristic object path")
    notify_parser.add_argument("--time", type=float, default=10.0, help="Listen duration (s)")

    # Interactive menu
    menu_parser = subparsers.add_parser("menu", help="Interactive menu")
    menu_parser.add_argument("--scan-time", type=float, default=10.0, help="Scan duration (s)")

    return parser.parse_args(args)


def _build_service(args):
    from blemgr.core.device_management import DeviceManagementService

    settings = load_settings(args.config).with_overrides(
        adapter=args.adapter,
        log_level="DEBUG" if args.debug else None,
    )
    return DeviceManagementService(settings=settings), settings


def _print_devices(devices):
    if not devices:
        print("No devices found.")
    for device in devices:
        print(device)
        for uuid in device.services:
            print(f"    {uuid}")


def _listen(service, char_path, duration):
    from blemgr.modes.menu import NOTIFY_SLEEP_S, print_notification

    service.set_notification_callback(print_notification)
    if not service.enable_notifications(char_path):
        return EXIT_FAILURE
    deadline = service.clock.monotonic() + duration
    try:
        while service.clock.monotonic() < deadline:
            service.process_notifications()
            service.clock.sleep(NOTIFY_SLEEP_S)
    except KeyboardInterrupt:
        pass
    finally:
        service.disable_notifications(char_path)
    return EXIT_OK


def _dispatch(service, args):
    mode = args.mode

    if mode == "menu":
        from blemgr.modes.menu import run_menu

        return run_menu(service, scan_time=args.scan_time)

    if mode == "scan":
        if args.filter:
            service.set_desired_services(args.filter)
        service.start_discovery()
        try:
            service.scan_for_devices(args.timeout)
        finally:
            service.stop_discovery()
        _print_devices(service.devices_with_desired_services())
        return EXIT_OK

    service.discover_devices()

    if mode == "devices":
        _print_devices(service.all_devices())
        return EXIT_OK

    if mode in ("chars", "connect", "disconnect"):
        path = service.resolve_device(args.device)
        if mode == "connect":
            return EXIT_OK if service.connect_device(path) else EXIT_FAILURE
        if mode == "disconnect":
            return EXIT_OK if service.disconnect_device(path) else EXIT_FAILURE
        chars = service.get_characteristics(path)
        if not chars:
            print("No characteristics found for this device.")
        for char in chars:
            print(f"{char.uuid}  {char.path}  [{' '.join(char.flags)}]")
        return EXIT_OK

    if mode == "read":
        from blemgr.bt_ref.utils import ascii_preview, bytes_to_hex

        # a failed read and an empty value both come back as b""
        data = service.read_characteristic(args.char_path)
        print(f"Data: {bytes_to_hex(data)}")
        print(f"ASCII: {ascii_preview(data)}")
        return EXIT_OK

    if mode == "write":
        from blemgr.bt_ref.utils import parse_hex_string

        data = parse_hex_string(args.data)
        if not data:
            raise InvalidArgumentError(args.data, "empty payload")
        return EXIT_OK if service.write_characteristic(args.char_path, data) else EXIT_FAILURE

    if mode == "notify":
        return _listen(service, args.char_path, args.time)

    return EXIT_FAILURE


def main(args=None):
    """Main entry point for blemgr."""
    args = parse_args(args)
    if args.mode is None:
        args.mode = "menu"
        args.scan_time = 10.0

    try:
        service, settings = _build_service(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INIT_FAILURE

    init_logging(settings.log_level)

    try:
        service.initialize()
    except (BusUnavailableError, AdapterNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_INIT_FAILURE

    try:
        return _dispatch(service, args)
    except BlemgrError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print_and_log("[*] Interrupted", LOG__GENERAL)
        return EXIT_FAILURE
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
