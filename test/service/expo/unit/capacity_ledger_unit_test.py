"""
Unit tests for CapacityLedger

Covers acquire/release semantics for booths (bounded, exclusive) and
sessions (shared, optionally unbounded), FIFO waitlist promotion and the
structural checks run on every transition.
"""

from typing import Optional

import pytest

from src.service.expo.domain.capacity_ledger import (
    Acquired,
    CapacityInvariantViolation,
    CapacityLedger,
    NoOp,
    PromotedHolder,
    Rejected,
    RejectReason,
    Released,
    Waitlisted,
)
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.expo.domain.enum import ResourceStatus
from src.service.shared_kernel.domain.enum import ResourceKind


def _booth(
    *, capacity: int = 1, allow_sharing: bool = False, allow_waitlist: bool = False
) -> BookableResource:
    return BookableResource.create(
        parent_event_id='expo-1',
        kind=ResourceKind.BOOTH,
        resource_number='A-1',
        capacity=capacity,
        allow_sharing=allow_sharing,
        allow_waitlist=allow_waitlist,
    )


def _session(*, capacity: Optional[int] = None, allow_waitlist: bool = True) -> BookableResource:
    return BookableResource.create(
        parent_event_id='expo-1',
        kind=ResourceKind.SESSION,
        resource_number='S1',
        capacity=capacity,
        allow_sharing=True,
        allow_waitlist=allow_waitlist,
    )


@pytest.mark.unit
class TestTryAcquire:
    def test_first_holder_acquires_free_booth(self) -> None:
        ledger = CapacityLedger(_booth())

        outcome = ledger.try_acquire('ex1')

        assert outcome == Acquired('ex1')
        assert ledger.status().holders == ('ex1',)
        assert ledger.status().status == ResourceStatus.OCCUPIED

    def test_full_booth_without_waitlist_rejects_at_capacity(self) -> None:
        ledger = CapacityLedger(_booth())
        ledger.try_acquire('ex1')

        outcome = ledger.try_acquire('ex2')

        assert outcome == Rejected(RejectReason.AT_CAPACITY)
        assert ledger.status().holders == ('ex1',)
        assert ledger.status().waitlist == ()

    def test_full_booth_with_waitlist_queues_in_arrival_order(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')

        assert ledger.try_acquire('ex2') == Waitlisted('ex2', 1)
        assert ledger.try_acquire('ex3') == Waitlisted('ex3', 2)
        assert ledger.status().waitlist == ('ex2', 'ex3')
        assert ledger.status().waitlist_position('ex3') == 2

    def test_current_holder_is_rejected_as_already_holding(self) -> None:
        ledger = CapacityLedger(_booth(capacity=2, allow_sharing=True))
        ledger.try_acquire('ex1')

        assert ledger.try_acquire('ex1') == Rejected(RejectReason.ALREADY_HOLDING)
        assert ledger.status().holders == ('ex1',)

    def test_waiting_holder_is_rejected_as_already_waitlisted(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')
        ledger.try_acquire('ex2')

        assert ledger.try_acquire('ex2') == Rejected(RejectReason.ALREADY_WAITLISTED)
        assert ledger.status().waitlist == ('ex2',)

    def test_second_exhibitor_on_unshared_booth_is_rejected(self) -> None:
        ledger = CapacityLedger(_booth(capacity=2, allow_sharing=False))
        ledger.try_acquire('ex1')

        assert ledger.try_acquire('ex2') == Rejected(RejectReason.SHARING_NOT_ALLOWED)

    def test_shared_booth_accepts_holders_up_to_capacity(self) -> None:
        ledger = CapacityLedger(_booth(capacity=2, allow_sharing=True))

        assert ledger.try_acquire('ex1') == Acquired('ex1')
        assert ledger.try_acquire('ex2') == Acquired('ex2')
        assert ledger.try_acquire('ex3') == Rejected(RejectReason.AT_CAPACITY)

    def test_closed_resource_rejects_everyone(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.close()

        assert ledger.try_acquire('ex1') == Rejected(RejectReason.CLOSED)
        assert ledger.status().status == ResourceStatus.CLOSED

    def test_unbounded_session_never_fills(self) -> None:
        ledger = CapacityLedger(_session(capacity=None))

        for i in range(50):
            assert ledger.try_acquire(f'u{i}') == Acquired(f'u{i}')

        snapshot = ledger.status()
        assert len(snapshot.holders) == 50
        assert snapshot.available_slots is None
        assert snapshot.status == ResourceStatus.RESERVED


@pytest.mark.unit
class TestRelease:
    def test_release_without_waitlist_frees_the_slot(self) -> None:
        ledger = CapacityLedger(_booth())
        ledger.try_acquire('ex1')

        assert ledger.release('ex1') == Released('ex1')
        assert ledger.status().holders == ()
        assert ledger.status().status == ResourceStatus.AVAILABLE

    def test_release_promotes_head_of_waitlist(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')
        ledger.try_acquire('ex2')
        ledger.try_acquire('ex3')

        outcome = ledger.release('ex1')

        assert outcome == PromotedHolder('ex1', 'ex2')
        assert ledger.status().holders == ('ex2',)
        assert ledger.status().waitlist == ('ex3',)

    def test_waitlist_is_served_first_in_first_out(self) -> None:
        ledger = CapacityLedger(_session(capacity=1))
        ledger.try_acquire('x')
        for holder in ('a', 'b', 'c'):
            ledger.try_acquire(holder)

        promoted = []
        current = 'x'
        for _ in range(3):
            outcome = ledger.release(current)
            assert isinstance(outcome, PromotedHolder)
            promoted.append(outcome.next_holder_id)
            current = outcome.next_holder_id

        assert promoted == ['a', 'b', 'c']
        assert ledger.status().waitlist == ()

    def test_session_registration_scenario(self) -> None:
        # S1: two seats, u3 waits, u1 leaves and u3 moves in
        ledger = CapacityLedger(_session(capacity=2))

        assert ledger.try_acquire('u1') == Acquired('u1')
        assert ledger.try_acquire('u2') == Acquired('u2')
        assert ledger.try_acquire('u3') == Waitlisted('u3', 1)
        assert ledger.release('u1') == PromotedHolder('u1', 'u3')

        snapshot = ledger.status()
        assert snapshot.holders == ('u2', 'u3')
        assert snapshot.waitlist == ()
        assert snapshot.available_slots == 0

    def test_cancel_twice_is_a_no_op(self) -> None:
        ledger = CapacityLedger(_booth())
        ledger.try_acquire('ex1')
        ledger.release('ex1')
        before = ledger.status()

        assert ledger.release('ex1') == NoOp('ex1')
        assert ledger.status() is before

    def test_release_of_waiting_holder_leaves_the_waitlist(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')
        ledger.try_acquire('ex2')
        ledger.try_acquire('ex3')

        assert ledger.release('ex2') == NoOp('ex2', removed_from_waitlist=True)
        assert ledger.status().holders == ('ex1',)
        assert ledger.status().waitlist == ('ex3',)

    def test_closed_resource_does_not_promote(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')
        ledger.try_acquire('ex2')
        ledger.close()

        assert ledger.release('ex1') == Released('ex1')
        assert ledger.status().holders == ()
        assert ledger.status().waitlist == ('ex2',)

    def test_ineligible_waiting_holders_are_dropped_before_promotion(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        for holder in ('ex1', 'ex2', 'ex3', 'ex4'):
            ledger.try_acquire(holder)

        outcome = ledger.release('ex1', is_eligible=lambda holder: holder not in {'ex2', 'ex4'})

        assert outcome == PromotedHolder('ex1', 'ex3', skipped_holder_ids=('ex2',))
        assert ledger.status().holders == ('ex3',)
        # Only the head of the queue is checked; ex4 keeps waiting
        assert ledger.status().waitlist == ('ex4',)

    def test_release_with_no_eligible_waiting_holder_empties_the_waitlist(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        for holder in ('ex1', 'ex2', 'ex3'):
            ledger.try_acquire(holder)

        outcome = ledger.release('ex1', is_eligible=lambda holder: False)

        assert outcome == Released('ex1', skipped_holder_ids=('ex2', 'ex3'))
        assert ledger.status().holders == ()
        assert ledger.status().waitlist == ()

    def test_release_without_promotion_keeps_the_waitlist(self) -> None:
        ledger = CapacityLedger(_booth(allow_waitlist=True))
        ledger.try_acquire('ex1')
        ledger.try_acquire('ex2')

        outcome = ledger.release('ex1', promote=False, is_eligible=lambda holder: False)

        assert outcome == Released('ex1')
        assert ledger.status().holders == ()
        assert ledger.status().waitlist == ('ex2',)

    def test_close_is_idempotent(self) -> None:
        ledger = CapacityLedger(_booth())

        assert ledger.close() is True
        assert ledger.close() is False


@pytest.mark.unit
class TestInvariants:
    def test_over_capacity_snapshot_is_refused(self) -> None:
        resource = _booth(capacity=1).with_changes(holders=('a', 'b'))

        with pytest.raises(CapacityInvariantViolation):
            CapacityLedger(resource)

    def test_duplicate_holder_is_refused(self) -> None:
        resource = _booth(capacity=3, allow_sharing=True).with_changes(holders=('a', 'a'))

        with pytest.raises(CapacityInvariantViolation):
            CapacityLedger(resource)

    def test_holder_cannot_also_wait(self) -> None:
        resource = _booth(allow_waitlist=True).with_changes(holders=('a',), waitlist=('a',))

        with pytest.raises(CapacityInvariantViolation):
            CapacityLedger(resource)

    def test_status_snapshot_is_not_affected_by_later_transitions(self) -> None:
        ledger = CapacityLedger(_booth(capacity=2, allow_sharing=True))
        ledger.try_acquire('a')
        snapshot = ledger.status()

        ledger.try_acquire('b')

        assert snapshot.holders == ('a',)
        assert ledger.status().holders == ('a', 'b')
