"""Bus client interface consumed by the discovery and GATT layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple


@dataclass(frozen=True)
class Reply:
    """Out-arguments of a successful method call, already unwrapped to Python values."""

    args: Tuple[Any, ...] = ()

    @property
    def first(self) -> Any:
        return self.args[0] if self.args else None


SignalHandler = Callable[..., None]


class BusClient(Protocol):
    """Synchronous request/reply and message-pump primitives over the system bus.

    Every action returns ``None`` (or ``False``) when it did not succeed; the
    caller cannot tell a timeout from a remote rejection or a transport error.
    """

    def connect(self) -> bool:
        """Open the bus connection."""

    def call(
        self,
        service: str,
        path: str,
        interface: str,
        method: str,
        signature: Optional[str] = None,
        args: Sequence[Any] = (),
    ) -> Optional[Reply]:
        """Blocking method call; ``None`` when no reply was received."""

    def get_property(self, service: str, path: str, interface: str, prop: str) -> Any:
        """Scoped ``Properties.Get``; ``None`` on failure."""

    def get_string_property(self, service: str, path: str, interface: str, prop: str) -> str:
        """Scoped string read; ``""`` on failure or type mismatch."""

    def get_bool_property(self, service: str, path: str, interface: str, prop: str) -> bool:
        """Scoped boolean read; ``False`` on failure or type mismatch."""

    def add_signal_match(self, rule: str) -> bool:
        """Install a raw match rule on the bus daemon."""

    def add_signal_receiver(
        self,
        handler: SignalHandler,
        *,
        signal_name: str,
        interface: str,
        sender: Optional[str] = None,
    ) -> Any:
        """Register *handler(*signal_args, path=object_path)* for a signal."""

    def pump_once(self, timeout_ms: int) -> None:
        """Dispatch pending bus messages for up to *timeout_ms*."""
