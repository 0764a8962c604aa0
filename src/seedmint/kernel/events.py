"""Ledger notifications: an observable side channel, not request/response."""

import logging
from dataclasses import dataclass, asdict
from typing import Callable, List, Literal, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequested:
    """A randomness request was issued for a freshly allocated item."""
    request_handle: str
    item_id: int
    requester: str
    kind: Literal["generation_requested"] = "generation_requested"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SeedReceived:
    """The provider delivered the seed; the item is now seeded."""
    request_handle: str
    item_id: int
    seed: int
    kind: Literal["seed_received"] = "seed_received"

    def to_dict(self) -> dict:
        # Seeds exceed JSON's safe integer range, so they travel as hex
        data = asdict(self)
        data["seed"] = f"0x{self.seed:064x}"
        return data


@dataclass(frozen=True)
class Finalized:
    """Content was generated and published for the item."""
    item_id: int
    content_locator: str
    kind: Literal["finalized"] = "finalized"

    def to_dict(self) -> dict:
        return asdict(self)


LedgerEvent = Union[GenerationRequested, SeedReceived, Finalized]
Subscriber = Callable[[LedgerEvent], None]


class EventLog:
    """Append-only record of emitted notifications with subscriber fan-out.

    The ledger emits from inside its serialization boundary, so the order of
    `events` is the order in which operations took effect. Subscribers run
    synchronously on the emitting thread while the ledger lock is held, and
    cannot abort the operation that emitted the event. They may call back
    into the ledger: the lock is reentrant and the emitting operation has
    already committed, so a nested call sees the new state and its own
    events follow the triggering one.
    """

    def __init__(self) -> None:
        self._events: List[LedgerEvent] = []
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def emit(self, event: LedgerEvent) -> None:
        self._events.append(event)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                # Operation already committed
                logger.exception("Subscriber %r failed on %s event", callback, event.kind)

    @property
    def events(self) -> tuple:
        return tuple(self._events)

    def of_kind(self, kind: str) -> List[LedgerEvent]:
        return [e for e in self._events if e.kind == kind]

    def __len__(self) -> int:
        return len(self._events)
