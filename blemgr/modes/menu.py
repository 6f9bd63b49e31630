#!/usr/bin/env python3
"""Menu Mode for blemgr.

Text menu over :class:`DeviceManagementService`:
- Scanning for devices and listing them
- Setting and applying a service filter
- Connecting and disconnecting
- Reading, writing and subscribing characteristics
- Pumping the bus so notifications are printed

Usage:
  blemgr menu [--scan-time <sec>]
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from blemgr.bt_ref.utils import ascii_preview, bytes_to_hex, parse_hex_string
from blemgr.core.device_management import DeviceManagementService
from blemgr.core.errors import InvalidArgumentError
from blemgr.core.log import print_and_log, LOG__USER
from blemgr.dbuslayer.characteristic import Characteristic
from blemgr.dbuslayer.device import Device

# Constants
DEFAULT_SCAN_TIMEOUT = 10  # seconds
DEFAULT_NOTIFY_WINDOW = 10  # seconds
NOTIFY_SLEEP_S = 0.1
MENU_EXIT_CHOICE = 0

MAIN_MENU = (
    "Scan for devices",
    "Set service filter",
    "List devices with desired services",
    "Connect to device",
    "Disconnect from device",
    "Manage characteristics",
    "Process notifications",
)

CHARACTERISTIC_MENU = (
    "Enable notifications",
    "Disable notifications",
    "Read characteristic",
    "Write to characteristic",
)


def format_device(device: Device, index: int) -> str:
    line = f"[{index}] {device}"
    if device.services:
        shown = ", ".join(device.services[:3])
        if len(device.services) > 3:
            shown += f" (+{len(device.services) - 3} more)"
        line += f"\n    Services: {shown}"
    return line


def format_characteristic(char: Characteristic, index: int) -> str:
    return (
        f"[{index}] UUID: {char.uuid}\n"
        f"    Path: {char.path}\n"
        f"    Flags: {' '.join(char.flags)}"
    )


def print_notification(path: str, data: bytes) -> None:
    print(f"\n*** NOTIFICATION from {path} ***")
    print(f"Data: {bytes_to_hex(data)}")
    print(f"ASCII: {ascii_preview(data)}\n")


class MenuSession:
    """Interactive main menu; *input_func* and *output* are injectable for tests."""

    def __init__(
        self,
        service: DeviceManagementService,
        *,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        scan_time: float = DEFAULT_SCAN_TIMEOUT,
        notify_window: float = DEFAULT_NOTIFY_WINDOW,
    ):
        self.service = service
        self._input = input_func
        self._out = output
        self.scan_time = scan_time
        self.notify_window = notify_window

    # ------------------------------------------------------------------
    # Input helpers
    # ------------------------------------------------------------------
    def _choice(self, max_choice: int, prompt: Optional[str] = None) -> int:
        """Return the selected index, or -1 on invalid input."""
        raw = self._input(prompt or f"Enter your choice (0-{max_choice}): ").strip()
        try:
            value = int(raw)
        except ValueError:
            return -1
        if value < 0 or value > max_choice:
            return -1
        return value

    def _pick(self, items: Sequence, formatter, title: str) -> Optional[int]:
        self._out(f"\n{title}")
        for i, item in enumerate(items):
            self._out(formatter(item, i))
        idx = self._choice(len(items) - 1)
        return idx if idx >= 0 else None

    def _show_menu(self, title: str, options: Sequence[str], back_label: str) -> None:
        self._out(f"\n=== {title} ===")
        for i, label in enumerate(options, start=1):
            self._out(f"{i}. {label}")
        self._out(f"0. {back_label}")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def run(self) -> int:
        self.service.set_notification_callback(print_notification)
        actions = {
            1: self.scan,
            2: self.set_filter,
            3: self.list_filtered,
            4: self.connect,
            5: self.disconnect,
            6: self.manage_characteristics,
            7: self.process_notifications,
        }
        while True:
            self._show_menu("Main Menu", MAIN_MENU, "Exit")
            try:
                choice = self._choice(len(MAIN_MENU))
                if choice == MENU_EXIT_CHOICE:
                    break
                action = actions.get(choice)
                if action is None:
                    self._out("Invalid choice. Please try again.")
                    continue
                action()
            except EOFError:
                # stdin closed
                break
        self._out("Exiting...")
        return 0

    def scan(self) -> None:
        self._out("\nStarting device scan...")
        self.service.start_discovery()
        try:
            devices = self.service.scan_for_devices(self.scan_time)
        finally:
            self.service.stop_discovery()
        self._out(f"\nFound {len(devices)} devices:")
        for i, device in enumerate(devices):
            self._out(format_device(device, i))

    def set_filter(self) -> None:
        raw = self._input("\nEnter desired service UUIDs (comma-separated, or 'none' to clear): ").strip()
        if raw.lower() == "none":
            self.service.set_desired_services([])
            return
        self.service.set_desired_services([s.strip() for s in raw.split(",") if s.strip()])

    def list_filtered(self) -> None:
        devices = self.service.devices_with_desired_services()
        self._out("\nDevices with desired services:")
        if not devices:
            self._out("No devices found with desired services.")
            return
        for i, device in enumerate(devices):
            self._out(format_device(device, i))

    def _connected(self) -> List[Device]:
        return self.service.registry.connected_devices()

    def connect(self) -> None:
        devices = self.service.all_devices()
        if not devices:
            self._out("No devices found. Please scan first.")
            return
        idx = self._pick(devices, format_device, "Select device to connect:")
        if idx is not None:
            self.service.connect_device(devices[idx].path)

    def disconnect(self) -> None:
        devices = self._connected()
        if not devices:
            self._out("No connected devices.")
            return
        idx = self._pick(devices, format_device, "Select device to disconnect:")
        if idx is not None:
            self.service.disconnect_device(devices[idx].path)

    def manage_characteristics(self) -> None:
        devices = self._connected()
        if not devices:
            self._out("No connected devices. Please connect to a device first.")
            return
        idx = self._pick(devices, format_device, "Select connected device:")
        if idx is None:
            return
        device = devices[idx]
        chars = self.service.get_characteristics(device.path)
        if not chars:
            self._out("No characteristics found for this device.")
            return

        while True:
            self._out(f"\nDevice: {device.display_name}\n\nCharacteristics:")
            for i, char in enumerate(chars):
                self._out(format_characteristic(char, i))
            self._show_menu("Characteristic Management", CHARACTERISTIC_MENU, "Back to main menu")
            action = self._choice(len(CHARACTERISTIC_MENU))
            if action == 0:
                return
            if action < 0:
                self._out("Invalid choice. Please try again.")
                continue
            char_idx = self._choice(len(chars) - 1, "Select characteristic: ")
            if char_idx < 0:
                continue
            self._characteristic_action(action, chars[char_idx])

    def _characteristic_action(self, action: int, char: Characteristic) -> None:
        if action == 1:
            self.service.enable_notifications(char.path)
        elif action == 2:
            self.service.disable_notifications(char.path)
        elif action == 3:
            data = self.service.read_characteristic(char.path)
            self._out(f"Read data: {bytes_to_hex(data)}")
        elif action == 4:
            raw = self._input("Enter hex data to write (e.g., '01 02 03' or '010203'): ")
            try:
                data = parse_hex_string(raw)
            except InvalidArgumentError as e:
                self._out(str(e))
                return
            if not data:
                self._out("Invalid hex data")
                return
            self.service.write_characteristic(char.path, data)

    def process_notifications(self) -> None:
        self._out(f"\nProcessing notifications for {self.notify_window:g} seconds...")
        self._out("Press Ctrl+C to stop early.")
        clock = self.service.clock
        deadline = clock.monotonic() + self.notify_window
        try:
            while clock.monotonic() < deadline:
                self.service.process_notifications()
                clock.sleep(NOTIFY_SLEEP_S)
        except KeyboardInterrupt:
            pass
        print_and_log("Finished processing notifications.", LOG__USER)


def run_menu(service: DeviceManagementService, scan_time: float = DEFAULT_SCAN_TIMEOUT) -> int:
    return MenuSession(service, scan_time=scan_time).run()
