"""
Optimistic overlays.

An overlay is a client-local value shown in place of the authoritative
(server) value while a mutation is in flight. Every overlay resolves within
one round trip: a failed mutation reverts it immediately, and a successful
one is dropped as soon as an authoritative snapshot has been seen.
"""
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class _Hidden:
    def __repr__(self) -> str:
        return "HIDDEN"


# Overlay marker for "entity removed locally"
HIDDEN: Any = _Hidden()


class Phase(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RECONCILED = "reconciled"
    REVERTED = "reverted"


def _default_agrees(server_value: Any, overlay: Any) -> bool:
    if overlay is HIDDEN:
        return server_value is None
    return server_value == overlay


class OptimisticValue(Generic[T]):
    def __init__(
        self,
        server_value: Optional[T] = None,
        agrees: Callable[[Any, Any], bool] = _default_agrees,
    ):
        self.server_value = server_value
        self.pending_overlay: Any = None
        self.phase = Phase.IDLE
        self._agrees = agrees
        self._snapshot_seen = False

    @property
    def value(self) -> Any:
        if self.phase in (Phase.PENDING, Phase.CONFIRMED):
            return self.pending_overlay
        return self.server_value

    @property
    def hidden(self) -> bool:
        return self.value is HIDDEN

    @property
    def reconciled(self) -> bool:
        return self.phase in (Phase.IDLE, Phase.RECONCILED, Phase.REVERTED)

    def apply(self, overlay: Any) -> None:
        self.pending_overlay = overlay
        self.phase = Phase.PENDING
        self._snapshot_seen = False

    def confirm(self) -> None:
        if self.phase != Phase.PENDING:
            return
        if self._snapshot_seen:
            self._reconcile()
        else:
            self.phase = Phase.CONFIRMED

    def revert(self) -> None:
        if self.phase not in (Phase.PENDING, Phase.CONFIRMED):
            return
        self.pending_overlay = None
        self.phase = Phase.REVERTED

    def receive(self, server_value: Optional[T]) -> None:
        """Record an authoritative snapshot of the value."""
        self.server_value = server_value
        if self.phase == Phase.CONFIRMED:
            self._reconcile()
        elif self.phase == Phase.PENDING:
            self._snapshot_seen = True
            if self._agrees(server_value, self.pending_overlay):
                self._reconcile()

    def _reconcile(self) -> None:
        self.pending_overlay = None
        self.phase = Phase.RECONCILED
