"""External collaborators of the request ledger.

The ledger depends only on the protocols below. The in-memory
implementations make the package runnable end-to-end (CLI simulation,
tests); real deployments supply their own randomness provider, payment
gate, ownership registry and publisher.
"""

import base64
import hashlib
import json
import logging
import secrets
import threading
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from seedmint._internal.canonical_json import canonical_dumps
from seedmint.config import RandomnessParams
from seedmint.errors import UnknownRequest
from seedmint.kernel.dispatch import RandomnessFulfillment
from seedmint.kernel.hash_utils import rehash, validate_uint256

logger = logging.getLogger(__name__)

SVG_DATA_PREFIX = "data:image/svg+xml;base64,"
JSON_DATA_PREFIX = "data:application/json;base64,"


@runtime_checkable
class RandomnessProvider(Protocol):
    """Issues request handles and later delivers one seed per handle."""
    identity: str

    def request(self, params: RandomnessParams) -> str: ...


@runtime_checkable
class PaymentGate(Protocol):
    """Economic precondition checked before any allocation."""

    def has_sufficient_balance(self) -> bool: ...

    def charge(self) -> None: ...


@runtime_checkable
class OwnerRegistry(Protocol):
    """Token registry; ownership is assigned when the seed arrives."""

    def register_owner(self, item_id: int, owner: str) -> None: ...


@runtime_checkable
class Publisher(Protocol):
    """Turns generated markup into a retrievable content locator."""

    def publish(self, markup: str, item_id: int) -> str: ...


FulfillmentSink = Callable[[RandomnessFulfillment], None]


class SimulatedRandomnessProvider:
    """In-process stand-in for a verifiable randomness service.

    request() only records the handle; nothing is delivered until fulfill()
    is called, which may be arbitrarily later (or never). Delivery goes
    through `sink`, normally a CallbackInbox.submit.
    """

    def __init__(
        self,
        sink: Optional[FulfillmentSink] = None,
        identity: str = "randomness-provider",
        base_seed: Optional[int] = None,
    ):
        self.identity = identity
        self.sink = sink
        self._base_seed = None if base_seed is None else validate_uint256(base_seed, "base_seed")
        self._lock = threading.Lock()
        self._nonce = 0
        self._pending: Dict[str, int] = {}

    def request(self, params: RandomnessParams) -> str:
        with self._lock:
            nonce = self._nonce
            self._nonce += 1
            material = f"{params.key_hash}:{nonce}".encode("utf-8")
            handle = "0x" + hashlib.sha256(material).hexdigest()
            self._pending[handle] = nonce
        logger.debug("Issued request handle %s (nonce %d)", handle, nonce)
        return handle

    def pending(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def _seed_for(self, nonce: int) -> int:
        if self._base_seed is None:
            return secrets.randbits(256)
        return rehash(self._base_seed, nonce)

    def fulfill(self, handle: str, seed: Optional[int] = None) -> RandomnessFulfillment:
        """Deliver the seed for a handle this provider issued.

        Raises:
            UnknownRequest: handle was never issued or was already fulfilled
        """
        with self._lock:
            nonce = self._pending.pop(handle, None)
        if nonce is None:
            raise UnknownRequest(f"Provider never issued pending handle {handle!r}", request_handle=handle)
        if seed is None:
            seed = self._seed_for(nonce)
        fulfillment = RandomnessFulfillment(request_handle=handle, seed=seed, sender=self.identity)
        if self.sink is not None:
            self.sink(fulfillment)
        return fulfillment


class FeeBalanceGate:
    """Payment gate backed by a prepaid balance; each request consumes `fee`."""

    def __init__(self, balance: int, fee: int):
        if balance < 0 or fee < 0:
            raise ValueError("balance and fee must be non-negative")
        self.balance = balance
        self.fee = fee

    def has_sufficient_balance(self) -> bool:
        return self.balance >= self.fee

    def charge(self) -> None:
        if self.balance < self.fee:
            raise ValueError(f"balance {self.balance} below fee {self.fee}")
        self.balance -= self.fee

    def fund(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must be non-negative")
        self.balance += amount


class InMemoryOwnerRegistry:
    """Item ownership table. Each item is registered at most once."""

    def __init__(self) -> None:
        self._owners: Dict[int, str] = {}

    def register_owner(self, item_id: int, owner: str) -> None:
        if item_id in self._owners:
            raise ValueError(f"Item {item_id} already has an owner")
        self._owners[item_id] = owner

    def owner_of(self, item_id: int) -> Optional[str]:
        return self._owners.get(item_id)

    def balance_of(self, owner: str) -> int:
        return sum(1 for o in self._owners.values() if o == owner)


class DataUriPublisher:
    """Publishes markup as a self-contained base64 data URI.

    The locator is a JSON metadata document (name, description, image)
    whose image field is itself an SVG data URI.
    """

    def __init__(self, name: str = "SeedMint", description: str = "Procedurally generated from a verifiable seed"):
        self.name = name
        self.description = description

    def publish(self, markup: str, item_id: int) -> str:
        image = SVG_DATA_PREFIX + base64.b64encode(markup.encode("utf-8")).decode("ascii")
        metadata = {
            "description": self.description,
            "image": image,
            "name": f"{self.name} #{item_id}",
        }
        payload = canonical_dumps(metadata).encode("utf-8")
        return JSON_DATA_PREFIX + base64.b64encode(payload).decode("ascii")


def decode_data_uri(locator: str) -> bytes:
    """Return the payload of a base64 data URI."""
    header, sep, data = locator.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError(f"Not a base64 data URI: {locator[:40]!r}")
    return base64.b64decode(data, validate=True)


def decode_metadata(locator: str) -> dict:
    """Decode a DataUriPublisher locator back to metadata plus SVG markup."""
    metadata = json.loads(decode_data_uri(locator).decode("utf-8"))
    metadata["markup"] = decode_data_uri(metadata["image"]).decode("utf-8")
    return metadata
