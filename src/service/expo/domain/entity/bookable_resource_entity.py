"""
Bookable Resource Entity

A booth or a session slot. Both share one shape; they differ in capacity
semantics (a session may be unbounded) and in which counters they feed.
Instances are frozen: every transition produces a new snapshot, so a
snapshot handed to a reader can never change underneath it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import attrs
import uuid_utils

from src.platform.exception.exceptions import ConflictError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.expo.domain.enum import ResourceStatus
from src.service.shared_kernel.domain.enum import ResourceKind


@attrs.frozen
class BookableResource:
    id: str
    parent_event_id: str
    kind: ResourceKind
    resource_number: str
    capacity: Optional[int]  # None = unbounded (sessions only)
    holders: Tuple[str, ...] = attrs.field(default=(), converter=tuple)
    waitlist: Tuple[str, ...] = attrs.field(default=(), converter=tuple)
    allow_sharing: bool = False
    allow_waitlist: bool = False
    is_closed: bool = False
    title: str = ''
    created_by: str = ''
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    @Logger.io
    def create(
        cls,
        *,
        parent_event_id: str,
        kind: ResourceKind,
        resource_number: str,
        capacity: Optional[int],
        allow_sharing: bool = False,
        allow_waitlist: bool = False,
        title: str = '',
        created_by: str = '',
    ) -> 'BookableResource':
        if not resource_number.strip():
            raise DomainError(f'{kind} number is required')
        if capacity is None and kind == ResourceKind.BOOTH:
            raise DomainError('Booth capacity is required')
        if capacity is not None and capacity < 1:
            raise DomainError('capacity must be at least 1')

        now = datetime.now(timezone.utc)
        return cls(
            id=str(uuid_utils.uuid7()),
            parent_event_id=parent_event_id,
            kind=kind,
            resource_number=resource_number.strip(),
            capacity=capacity,
            allow_sharing=allow_sharing,
            allow_waitlist=allow_waitlist,
            title=title,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

    @property
    def status(self) -> ResourceStatus:
        if self.is_closed:
            return ResourceStatus.CLOSED
        if not self.holders:
            return ResourceStatus.AVAILABLE
        if self.capacity is not None and len(self.holders) >= self.capacity:
            return ResourceStatus.OCCUPIED
        return ResourceStatus.RESERVED

    @property
    def has_free_capacity(self) -> bool:
        return self.capacity is None or len(self.holders) < self.capacity

    @property
    def available_slots(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(self.capacity - len(self.holders), 0)

    def waitlist_position(self, holder_id: str) -> Optional[int]:
        """1-based position in the waitlist, or None when not waiting."""
        try:
            return self.waitlist.index(holder_id) + 1
        except ValueError:
            return None

    def with_changes(self, **changes: Any) -> 'BookableResource':
        return attrs.evolve(self, updated_at=datetime.now(timezone.utc), **changes)

    def validate_can_be_deleted(self) -> None:
        """
        Raises:
            ConflictError: While anybody holds or waits for the resource
        """
        if self.holders or self.waitlist:
            raise ConflictError(f'Cannot delete a {self.kind} with active bookings')

    def to_snapshot_dict(self) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {
            'id': self.id,
            'expoId': self.parent_event_id,
            'kind': self.kind.value,
            'resourceNumber': self.resource_number,
            'title': self.title,
            'capacity': self.capacity,
            'status': self.status.value,
            'holders': list(self.holders),
            'waitlist': list(self.waitlist),
            'availableSlots': self.available_slots,
            'allowSharing': self.allow_sharing,
            'allowWaitlist': self.allow_waitlist,
            'updatedAt': self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.kind == ResourceKind.BOOTH:
            snapshot['exhibitor'] = self.holders[0] if self.holders else None
        else:
            snapshot['maxAttendees'] = self.capacity
            snapshot['registeredAttendees'] = list(self.holders)
        return snapshot
