"""Shared Kernel Enums"""

from src.service.shared_kernel.domain.enum.booking_event_kind import BookingEventKind
from src.service.shared_kernel.domain.enum.resource_kind import ResourceKind

__all__ = ['BookingEventKind', 'ResourceKind']
