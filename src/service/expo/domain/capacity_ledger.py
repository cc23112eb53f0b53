"""
Capacity Ledger

Authoritative state machine for one bookable resource. Every rule about who
may hold or wait for a slot lives here and nowhere else.

The ledger is pure and synchronous: callers load the current resource, run
``try_acquire``/``release`` inside the resource's critical section, and
persist ``status()`` afterwards. Because no step awaits, a check and its
mutation can never interleave with another caller on the same event loop.

Checks in ``try_acquire`` run in this order:
    closed -> already holding -> sharing not allowed -> free slot (acquire)
    -> already waitlisted -> waitlist -> at capacity

``sharing not allowed`` only fires while a slot is still free; a full
resource always answers with capacity semantics.
"""

from enum import StrEnum
from itertools import takewhile
from typing import Callable, Optional, Tuple

import attrs

from src.platform.logging.loguru_io import Logger
from src.service.expo.domain.entity.bookable_resource_entity import BookableResource


class RejectReason(StrEnum):
    ALREADY_HOLDING = 'already_holding'
    ALREADY_WAITLISTED = 'already_waitlisted'
    AT_CAPACITY = 'at_capacity'
    SHARING_NOT_ALLOWED = 'sharing_not_allowed'
    CLOSED = 'closed'


@attrs.frozen
class Acquired:
    holder_id: str


@attrs.frozen
class Waitlisted:
    holder_id: str
    position: int


@attrs.frozen
class Rejected:
    reason: RejectReason


@attrs.frozen
class Released:
    holder_id: str
    # Waiting holders dropped because they may no longer take the slot
    skipped_holder_ids: Tuple[str, ...] = ()


@attrs.frozen
class PromotedHolder:
    released_holder_id: str
    next_holder_id: str
    skipped_holder_ids: Tuple[str, ...] = ()


@attrs.frozen
class NoOp:
    holder_id: str
    removed_from_waitlist: bool = False


AcquireOutcome = Acquired | Waitlisted | Rejected
ReleaseOutcome = Released | PromotedHolder | NoOp


class CapacityInvariantViolation(Exception):
    """A transition would leave the resource over capacity or with a holder in two places."""


def check_invariants(resource: BookableResource) -> None:
    holders = resource.holders
    waitlist = resource.waitlist
    if resource.capacity is not None and len(holders) > resource.capacity:
        raise CapacityInvariantViolation(
            f'{resource.id}: {len(holders)} holders exceed capacity {resource.capacity}'
        )
    if len(set(holders)) != len(holders) or len(set(waitlist)) != len(waitlist):
        raise CapacityInvariantViolation(f'{resource.id}: duplicate holder identity')
    if overlap := set(holders) & set(waitlist):
        raise CapacityInvariantViolation(f'{resource.id}: {overlap} both holding and waiting')


class CapacityLedger:
    def __init__(self, resource: BookableResource) -> None:
        check_invariants(resource)
        self._resource = resource

    def status(self) -> BookableResource:
        """Current snapshot (frozen, safe to hand to readers)."""
        return self._resource

    def _commit(self, resource: BookableResource) -> None:
        check_invariants(resource)
        self._resource = resource

    def try_acquire(self, holder_id: str) -> AcquireOutcome:
        resource = self._resource

        if resource.is_closed:
            return Rejected(RejectReason.CLOSED)
        if holder_id in resource.holders:
            return Rejected(RejectReason.ALREADY_HOLDING)
        if resource.has_free_capacity and resource.holders and not resource.allow_sharing:
            return Rejected(RejectReason.SHARING_NOT_ALLOWED)

        if resource.has_free_capacity:
            self._commit(
                resource.with_changes(
                    holders=(*resource.holders, holder_id),
                    waitlist=tuple(h for h in resource.waitlist if h != holder_id),
                )
            )
            Logger.base.debug(f'🎫 [LEDGER] {holder_id} acquired {resource.id}')
            return Acquired(holder_id)

        if holder_id in resource.waitlist:
            return Rejected(RejectReason.ALREADY_WAITLISTED)

        if resource.allow_waitlist:
            self._commit(resource.with_changes(waitlist=(*resource.waitlist, holder_id)))
            position = len(self._resource.waitlist)
            Logger.base.debug(f'🎫 [LEDGER] {holder_id} waitlisted on {resource.id} (#{position})')
            return Waitlisted(holder_id, position)

        return Rejected(RejectReason.AT_CAPACITY)

    def release(
        self,
        holder_id: str,
        *,
        promote: bool = True,
        is_eligible: Optional[Callable[[str], bool]] = None,
    ) -> ReleaseOutcome:
        """
        Free ``holder_id``'s slot, or withdraw them from the waitlist.

        Args:
            promote: False keeps the waitlist untouched (nobody moves in)
            is_eligible: Waiting holders at the head of the queue that fail this
                check are dropped until an eligible one is found
        """
        resource = self._resource

        if holder_id in resource.holders:
            holders = tuple(h for h in resource.holders if h != holder_id)
            waitlist = resource.waitlist
            skipped: Tuple[str, ...] = ()
            # A closed resource keeps its waitlist frozen; nobody moves in
            promote = promote and not resource.is_closed
            if promote and is_eligible is not None:
                skipped = tuple(takewhile(lambda h: not is_eligible(h), waitlist))
                waitlist = waitlist[len(skipped) :]
                if skipped:
                    Logger.base.debug(f'🎫 [LEDGER] {resource.id} dropped ineligible {skipped}')

            if waitlist and promote:
                next_holder_id, *rest = waitlist
                self._commit(
                    resource.with_changes(holders=(*holders, next_holder_id), waitlist=tuple(rest))
                )
                Logger.base.debug(
                    f'🎫 [LEDGER] {holder_id} released {resource.id}, promoted {next_holder_id}'
                )
                return PromotedHolder(holder_id, next_holder_id, skipped)

            self._commit(resource.with_changes(holders=holders, waitlist=waitlist))
            Logger.base.debug(f'🎫 [LEDGER] {holder_id} released {resource.id}')
            return Released(holder_id, skipped)

        if holder_id in resource.waitlist:
            self._commit(
                resource.with_changes(waitlist=tuple(h for h in resource.waitlist if h != holder_id))
            )
            return NoOp(holder_id, removed_from_waitlist=True)

        return NoOp(holder_id)

    def close(self) -> bool:
        """Close the resource for good; False when it already was."""
        if self._resource.is_closed:
            return False
        self._commit(self._resource.with_changes(is_closed=True))
        return True
