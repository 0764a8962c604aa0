"""Tests for the request ledger state machine."""

import pytest
from pydantic import ValidationError

from seedmint.codes import ErrorCode
from seedmint.collaborators import FeeBalanceGate, decode_metadata
from seedmint.config import DEFAULT_CONFIG
from seedmint.errors import (
    AlreadyFinalized,
    AlreadySeeded,
    DuplicateRequestHandle,
    InsufficientResource,
    InvalidSeed,
    SeedNotReady,
    UnauthorizedCallback,
    UnknownItem,
    UnknownRequest,
)
from seedmint.kernel.generator import generate
from seedmint.kernel.ledger import (
    FinalizedItem,
    ItemState,
    RequestedItem,
    RequestLedger,
    SeededItem,
)

PROVIDER = "vrf-coordinator"


class TestBeginGeneration:

    def test_first_item_is_zero(self, ledger):
        handle = ledger.begin_generation("alice")
        assert ledger.request(handle).item_id == 0
        assert ledger.state_of(0) == ItemState.REQUESTED
        assert ledger.next_item_id == 1

    def test_ids_strictly_increase_without_gaps(self, ledger):
        handles = [ledger.begin_generation(f"user{i}") for i in range(5)]
        assert [ledger.request(h).item_id for h in handles] == [0, 1, 2, 3, 4]
        assert len(set(handles)) == 5

    def test_request_records_requester(self, ledger):
        handle = ledger.begin_generation("alice")
        request = ledger.request(handle)
        assert request.requester == "alice"
        assert request.request_handle == handle

    def test_emits_generation_requested(self, ledger):
        handle = ledger.begin_generation("alice")
        (event,) = ledger.events.events
        assert event.kind == "generation_requested"
        assert (event.request_handle, event.item_id) == (handle, 0)

    def test_insufficient_balance_allocates_nothing(self, provider, registry, publisher, paid_config):
        gate = FeeBalanceGate(balance=99, fee=100)
        ledger = RequestLedger(paid_config, provider, gate, registry, publisher)
        with pytest.raises(InsufficientResource) as excinfo:
            ledger.begin_generation("alice")
        assert excinfo.value.code == ErrorCode.INSUFFICIENT_RESOURCE
        assert ledger.next_item_id == 0
        assert provider.pending() == []
        assert len(ledger.events) == 0
        assert gate.balance == 99

    def test_fee_consumed_per_request(self, provider, registry, publisher, paid_config):
        gate = FeeBalanceGate(balance=250, fee=100)
        ledger = RequestLedger(paid_config, provider, gate, registry, publisher)
        ledger.begin_generation("alice")
        ledger.begin_generation("alice")
        assert gate.balance == 50
        with pytest.raises(InsufficientResource):
            ledger.begin_generation("alice")
        assert ledger.next_item_id == 2

    def test_retry_after_funding(self, provider, registry, publisher, paid_config):
        gate = FeeBalanceGate(balance=0, fee=100)
        ledger = RequestLedger(paid_config, provider, gate, registry, publisher)
        with pytest.raises(InsufficientResource):
            ledger.begin_generation("alice")
        gate.fund(100)
        handle = ledger.begin_generation("alice")
        assert ledger.request(handle).item_id == 0

    def test_rejected_requester_leaves_ledger_untouched(self, provider, registry, publisher, paid_config):
        gate = FeeBalanceGate(balance=100, fee=100)
        ledger = RequestLedger(paid_config, provider, gate, registry, publisher)
        with pytest.raises(ValidationError):
            ledger.begin_generation(None)
        assert ledger.next_item_id == 0
        assert gate.balance == 100
        assert ledger.pending_handles() == []
        assert len(ledger.events) == 0

        handle = ledger.begin_generation("bob")
        request = ledger.request(handle)
        assert (request.item_id, request.requester) == (0, "bob")
        assert ledger.pending_handles() == [handle]

    def test_duplicate_handle_from_provider_rejected(self, gate, registry, publisher):
        class StuckProvider:
            identity = PROVIDER

            def request(self, params):
                return "0xsame"

        ledger = RequestLedger(DEFAULT_CONFIG, StuckProvider(), gate, registry, publisher)
        ledger.begin_generation("alice")
        with pytest.raises(DuplicateRequestHandle):
            ledger.begin_generation("bob")
        assert ledger.next_item_id == 1
        assert ledger.request("0xsame").requester == "alice"


class TestOnRandomnessReceived:

    def test_seed_written_and_owner_registered(self, ledger, registry):
        handle = ledger.begin_generation("alice")
        assert ledger.on_randomness_received(handle, 12345, PROVIDER) == 0
        item = ledger.item(0)
        assert isinstance(item, SeededItem)
        assert item.seed == 12345
        assert registry.owner_of(0) == "alice"

    def test_emits_seed_received(self, ledger):
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        event = ledger.events.of_kind("seed_received")[0]
        assert (event.request_handle, event.item_id, event.seed) == (handle, 0, 12345)
        assert event.to_dict()["seed"] == "0x" + format(12345, "064x")

    def test_second_callback_rejected_seed_unchanged(self, ledger):
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        with pytest.raises(AlreadySeeded) as excinfo:
            ledger.on_randomness_received(handle, 99999, PROVIDER)
        assert excinfo.value.code == ErrorCode.ALREADY_SEEDED
        assert ledger.item(0).seed == 12345
        assert len(ledger.events.of_kind("seed_received")) == 1

    def test_callback_after_finalize_rejected(self, ledger):
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        ledger.finalize(0)
        with pytest.raises(AlreadySeeded):
            ledger.on_randomness_received(handle, 1, PROVIDER)
        assert ledger.state_of(0) == ItemState.FINALIZED

    def test_unknown_handle(self, ledger):
        ledger.begin_generation("alice")
        with pytest.raises(UnknownRequest):
            ledger.on_randomness_received("0xnope", 1, PROVIDER)
        assert ledger.state_of(0) == ItemState.REQUESTED

    def test_unauthorized_sender(self, ledger, registry):
        handle = ledger.begin_generation("alice")
        with pytest.raises(UnauthorizedCallback):
            ledger.on_randomness_received(handle, 12345, "mallory")
        assert ledger.state_of(0) == ItemState.REQUESTED
        assert registry.owner_of(0) is None

    @pytest.mark.parametrize("seed", [-1, 2 ** 256, "12345"])
    def test_invalid_seed(self, ledger, seed):
        handle = ledger.begin_generation("alice")
        with pytest.raises(InvalidSeed):
            ledger.on_randomness_received(handle, seed, PROVIDER)
        assert ledger.state_of(0) == ItemState.REQUESTED

    def test_registry_failure_leaves_item_requested(self, provider, gate, publisher):
        class BrokenRegistry:
            def register_owner(self, item_id, owner):
                raise RuntimeError("registry offline")

        ledger = RequestLedger(DEFAULT_CONFIG, provider, gate, BrokenRegistry(), publisher)
        handle = ledger.begin_generation("alice")
        with pytest.raises(RuntimeError):
            ledger.on_randomness_received(handle, 12345, PROVIDER)
        assert ledger.state_of(0) == ItemState.REQUESTED
        assert ledger.events.of_kind("seed_received") == []

    def test_callbacks_may_arrive_out_of_order(self, ledger):
        h0 = ledger.begin_generation("alice")
        h1 = ledger.begin_generation("bob")
        ledger.on_randomness_received(h1, 2, PROVIDER)
        assert ledger.state_of(0) == ItemState.REQUESTED
        assert ledger.state_of(1) == ItemState.SEEDED
        ledger.on_randomness_received(h0, 1, PROVIDER)
        assert ledger.item(0).seed == 1
        assert ledger.item(1).seed == 2


class TestFinalize:

    def test_end_to_end_reference_seed(self, ledger, publisher):
        handle = ledger.begin_generation("alice")
        assert ledger.request(handle).item_id == 0
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        locator = ledger.finalize(0)

        markup = decode_metadata(locator)["markup"]
        assert markup == generate(12345, DEFAULT_CONFIG.generator)
        assert markup.count("<path ") == 6
        assert ledger.content_of(0) == locator
        assert publisher.published == [(0, markup)]

        event = ledger.events.of_kind("finalized")[0]
        assert (event.item_id, event.content_locator) == (0, locator)

    def test_anyone_may_finalize(self, ledger):
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 5, PROVIDER)
        # finalize takes no caller identity at all
        assert ledger.finalize(0)

    def test_seed_not_ready(self, ledger):
        ledger.begin_generation("alice")
        with pytest.raises(SeedNotReady) as excinfo:
            ledger.finalize(0)
        assert excinfo.value.code == ErrorCode.SEED_NOT_READY
        assert ledger.content_of(0) is None
        assert isinstance(ledger.item(0), RequestedItem)

    def test_second_finalize_never_regenerates(self, ledger, publisher, monkeypatch):
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        locator = ledger.finalize(0)

        calls = []
        import seedmint.kernel.ledger as ledger_module
        monkeypatch.setattr(ledger_module, "generate", lambda *a: calls.append(a) or "<svg/>")

        with pytest.raises(AlreadyFinalized):
            ledger.finalize(0)
        assert calls == []
        assert len(publisher.published) == 1
        assert ledger.content_of(0) == locator

    @pytest.mark.parametrize("item_id", [1, 7, -1, "0", None, True])
    def test_unknown_item(self, ledger, item_id):
        ledger.begin_generation("alice")
        with pytest.raises(UnknownItem):
            ledger.finalize(item_id)

    def test_unknown_item_before_any_request(self, ledger):
        with pytest.raises(UnknownItem):
            ledger.finalize(0)

    def test_publisher_failure_leaves_item_seeded(self, provider, gate, registry):
        class BrokenPublisher:
            def publish(self, markup, item_id):
                raise OSError("storage unavailable")

        ledger = RequestLedger(DEFAULT_CONFIG, provider, gate, registry, BrokenPublisher())
        handle = ledger.begin_generation("alice")
        ledger.on_randomness_received(handle, 12345, PROVIDER)
        with pytest.raises(OSError):
            ledger.finalize(0)
        assert ledger.state_of(0) == ItemState.SEEDED
        assert ledger.events.of_kind("finalized") == []


class TestItemRecords:

    def test_records_are_frozen(self):
        item = SeededItem(item_id=0, seed=1)
        with pytest.raises(ValidationError):
            item.seed = 2

    def test_requested_item_has_no_seed_field(self):
        with pytest.raises(ValidationError):
            RequestedItem(item_id=0, seed=1)

    def test_finalized_requires_seed(self):
        with pytest.raises(ValidationError):
            FinalizedItem(item_id=0, content="data:")

    def test_pending_handles(self, ledger):
        h0 = ledger.begin_generation("alice")
        h1 = ledger.begin_generation("bob")
        ledger.on_randomness_received(h0, 1, PROVIDER)
        assert ledger.pending_handles() == [h1]

    def test_unanswered_request_stays_requested(self, ledger):
        handle = ledger.begin_generation("alice")
        for other in range(3):
            h = ledger.begin_generation(f"user{other}")
            ledger.on_randomness_received(h, other, PROVIDER)
            ledger.finalize(ledger.request(h).item_id)
        assert ledger.state_of(0) == ItemState.REQUESTED
        assert ledger.pending_handles() == [handle]
