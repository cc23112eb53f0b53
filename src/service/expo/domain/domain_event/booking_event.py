"""
Booking Event

The unit pushed over the real-time channel. One event is emitted per
committed ledger transition; events are immutable once built.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import attrs
import uuid_utils

from src.service.expo.domain.entity.bookable_resource_entity import BookableResource
from src.service.shared_kernel.domain.enum import BookingEventKind, ResourceKind


# `action` as the push channel names it, per resource kind
_ACTIONS: Dict[ResourceKind, Dict[BookingEventKind, str]] = {
    ResourceKind.BOOTH: {
        BookingEventKind.BOOKED: 'booked',
        BookingEventKind.PROMOTED: 'booked',
        BookingEventKind.WAITLISTED: 'waitlisted',
        BookingEventKind.RELEASED: 'cancelled',
        BookingEventKind.CANCELLED: 'cancelled',
    },
    ResourceKind.SESSION: {
        BookingEventKind.BOOKED: 'registered',
        BookingEventKind.PROMOTED: 'registered',
        BookingEventKind.WAITLISTED: 'waitlisted',
        BookingEventKind.RELEASED: 'cancelled',
        BookingEventKind.CANCELLED: 'cancelled',
    },
}


@attrs.frozen
class BookingEvent:
    id: str
    resource_id: str
    parent_event_id: str
    resource_kind: ResourceKind
    kind: BookingEventKind
    actor_id: str
    holder_id: str
    timestamp: datetime
    payload: Dict[str, Any] = attrs.field(factory=dict)

    @classmethod
    def create(
        cls,
        *,
        resource: BookableResource,
        kind: BookingEventKind,
        actor_id: str,
        holder_id: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> 'BookingEvent':
        return cls(
            id=str(uuid_utils.uuid7()),
            resource_id=resource.id,
            parent_event_id=resource.parent_event_id,
            resource_kind=resource.kind,
            kind=kind,
            actor_id=actor_id,
            holder_id=holder_id,
            timestamp=datetime.now(timezone.utc),
            payload={**(payload or {}), 'resource': resource.to_snapshot_dict()},
        )

    @property
    def action(self) -> str:
        return _ACTIONS[self.resource_kind][self.kind]

    @property
    def message_type(self) -> str:
        return self.resource_kind.update_message_type

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp.timestamp() * 1000)

    def to_channel_payload(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'kind': self.kind.value,
            'action': self.action,
            'resourceKind': self.resource_kind.value,
            'resourceId': self.resource_id,
            'expoId': self.parent_event_id,
            'actorId': self.actor_id,
            'holderId': self.holder_id,
            **self.payload,
        }
