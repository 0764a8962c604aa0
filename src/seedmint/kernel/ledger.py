"""Request ledger: correlates randomness requests with their callbacks.

Item lifecycle is a tagged state. Each transition swaps the item's record
for a record of the next state:

    RequestedItem --on_randomness_received--> SeededItem --finalize--> FinalizedItem

A RequestedItem has no seed and a SeededItem has no content, so a seed
cannot be overwritten and content cannot exist without a seed. All state
lives behind one lock; begin_generation, on_randomness_received and
finalize are linearized and each either commits fully or changes nothing.
"""

import logging
import threading
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from seedmint.collaborators import OwnerRegistry, PaymentGate, Publisher, RandomnessProvider
from seedmint.config import MintConfig
from seedmint.errors import (
    AlreadyFinalized,
    AlreadySeeded,
    DuplicateRequestHandle,
    InsufficientResource,
    SeedNotReady,
    UnauthorizedCallback,
    UnknownItem,
    UnknownRequest,
)
from .events import EventLog, Finalized, GenerationRequested, SeedReceived
from .generator import generate
from .hash_utils import validate_uint256

logger = logging.getLogger(__name__)


class ItemState(str, Enum):
    REQUESTED = "requested"
    SEEDED = "seeded"
    FINALIZED = "finalized"


class GenerationRequest(BaseModel):
    """One randomness round. Immutable once recorded."""
    request_handle: str
    requester: str
    item_id: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")


class RequestedItem(BaseModel):
    """Item id allocated, waiting for the provider."""
    item_id: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def state(self) -> ItemState:
        return ItemState.REQUESTED


class SeededItem(BaseModel):
    """Seed written exactly once; content not yet generated."""
    item_id: int = Field(..., ge=0)
    seed: int

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('seed')
    @classmethod
    def validate_seed(cls, v: int) -> int:
        return validate_uint256(v)

    @property
    def state(self) -> ItemState:
        return ItemState.SEEDED


class FinalizedItem(BaseModel):
    """Content generated and published. Terminal."""
    item_id: int = Field(..., ge=0)
    seed: int
    content: str

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator('seed')
    @classmethod
    def validate_seed(cls, v: int) -> int:
        return validate_uint256(v)

    @property
    def state(self) -> ItemState:
        return ItemState.FINALIZED


Item = Union[RequestedItem, SeededItem, FinalizedItem]


class RequestLedger:
    """Owns every GenerationRequest and Item record for their whole lifetime.

    Records live in an arena indexed by item_id, with a secondary index from
    request_handle to item_id. Nothing here blocks waiting for a callback: an
    item whose callback never arrives stays REQUESTED indefinitely.
    """

    def __init__(
        self,
        config: MintConfig,
        provider: RandomnessProvider,
        payment: PaymentGate,
        registry: OwnerRegistry,
        publisher: Publisher,
        events: Optional[EventLog] = None,
    ):
        self.config = config
        self._provider = provider
        self._payment = payment
        self._registry = registry
        self._publisher = publisher
        self.events = events if events is not None else EventLog()

        self._lock = threading.RLock()
        self._items: List[Item] = []
        self._requests: List[GenerationRequest] = []
        self._item_by_handle: Dict[str, int] = {}

    @property
    def next_item_id(self) -> int:
        """Allocation counter: the id the next begin_generation will assign."""
        with self._lock:
            return len(self._items)

    def begin_generation(self, requester: str) -> str:
        """Allocate the next item and issue its randomness request.

        Returns:
            The provider's request handle

        Raises:
            InsufficientResource: Payment gate refused; nothing was allocated
            DuplicateRequestHandle: Provider reused a handle; nothing was allocated
            pydantic.ValidationError: requester is not a string; nothing was charged
        """
        with self._lock:
            if not self._payment.has_sufficient_balance():
                raise InsufficientResource(
                    f"Payment gate refused request from {requester!r}",
                    requester=requester,
                )

            handle = self._provider.request(self.config.randomness)
            if handle in self._item_by_handle:
                logger.error("Provider issued duplicate request handle %s", handle)
                raise DuplicateRequestHandle(
                    f"Request handle {handle!r} already tracked",
                    request_handle=handle,
                )

            item_id = len(self._items)
            request = GenerationRequest(request_handle=handle, requester=requester, item_id=item_id)
            item = RequestedItem(item_id=item_id)

            # Last fallible step; the writes below cannot fail
            self._payment.charge()

            self._items.append(item)
            self._requests.append(request)
            self._item_by_handle[handle] = item_id

            logger.info("Item %d requested by %s (handle %s)", item_id, requester, handle)
            self.events.emit(
                GenerationRequested(request_handle=handle, item_id=item_id, requester=requester)
            )
            return handle

    def on_randomness_received(self, request_handle: str, seed: int, sender: str) -> int:
        """Store the provider's seed against the item the handle belongs to.

        Only the configured provider may deliver seeds. The owner is
        registered at seed-time, not at finalize-time.

        Returns:
            The item_id that was seeded

        Raises:
            UnauthorizedCallback: sender is not the provider
            InvalidSeed: seed is not an unsigned 256-bit integer
            UnknownRequest: handle was never issued to this ledger
            AlreadySeeded: item already holds a seed (never overwritten)
        """
        with self._lock:
            if sender != self._provider.identity:
                logger.error("Rejected callback for %s from unauthorized sender %r", request_handle, sender)
                raise UnauthorizedCallback(
                    f"Callback sender {sender!r} is not the randomness provider",
                    request_handle=request_handle,
                    sender=sender,
                )
            validate_uint256(seed)

            item_id = self._item_by_handle.get(request_handle)
            if item_id is None:
                logger.error("Callback for unknown request handle %s", request_handle)
                raise UnknownRequest(
                    f"No generation request for handle {request_handle!r}",
                    request_handle=request_handle,
                )

            current = self._items[item_id]
            if not isinstance(current, RequestedItem):
                logger.warning("Duplicate callback for item %d (handle %s) rejected", item_id, request_handle)
                raise AlreadySeeded(
                    f"Item {item_id} already seeded",
                    item_id=item_id,
                    request_handle=request_handle,
                )

            seeded = SeededItem(item_id=item_id, seed=seed)
            requester = self._requests[item_id].requester
            self._registry.register_owner(item_id, requester)
            self._items[item_id] = seeded

            logger.info("Item %d seeded (handle %s)", item_id, request_handle)
            self.events.emit(SeedReceived(request_handle=request_handle, item_id=item_id, seed=seed))
            return item_id

    def finalize(self, item_id: int) -> str:
        """Generate and publish content for a seeded item. Anyone may call.

        Never waits: an item without a seed fails immediately.

        Returns:
            The content locator returned by the publisher

        Raises:
            UnknownItem: id was never allocated
            AlreadyFinalized: content already published; generator not re-run
            SeedNotReady: callback has not arrived yet
        """
        with self._lock:
            current = self._get_item(item_id)
            if isinstance(current, FinalizedItem):
                raise AlreadyFinalized(f"Item {item_id} already finalized", item_id=item_id)
            if isinstance(current, RequestedItem):
                raise SeedNotReady(f"Item {item_id} has no seed yet", item_id=item_id)

            logger.debug("Generating content for item %d", item_id)
            markup = generate(current.seed, self.config.generator)
            locator = self._publisher.publish(markup, item_id)
            self._items[item_id] = FinalizedItem(item_id=item_id, seed=current.seed, content=locator)

            logger.info("Item %d finalized", item_id)
            self.events.emit(Finalized(item_id=item_id, content_locator=locator))
            return locator

    def _get_item(self, item_id: int) -> Item:
        if isinstance(item_id, bool) or not isinstance(item_id, int) or not 0 <= item_id < len(self._items):
            raise UnknownItem(f"Unknown item {item_id!r}", item_id=item_id)
        return self._items[item_id]

    def item(self, item_id: int) -> Item:
        with self._lock:
            return self._get_item(item_id)

    def state_of(self, item_id: int) -> ItemState:
        return self.item(item_id).state

    def content_of(self, item_id: int) -> Optional[str]:
        """Published locator, or None until the item is finalized."""
        current = self.item(item_id)
        return current.content if isinstance(current, FinalizedItem) else None

    def request(self, request_handle: str) -> GenerationRequest:
        with self._lock:
            item_id = self._item_by_handle.get(request_handle)
            if item_id is None:
                raise UnknownRequest(
                    f"No generation request for handle {request_handle!r}",
                    request_handle=request_handle,
                )
            return self._requests[item_id]

    def pending_handles(self) -> List[str]:
        """Handles still waiting for a callback, in allocation order."""
        with self._lock:
            return [
                self._requests[item.item_id].request_handle
                for item in self._items
                if isinstance(item, RequestedItem)
            ]
