"""
Bookable resource status

Derived from the holder count, never stored on its own. ``waitlisted`` is a
per-holder state and deliberately absent here.
"""

from enum import StrEnum


class ResourceStatus(StrEnum):
    AVAILABLE = 'available'
    RESERVED = 'reserved'
    OCCUPIED = 'occupied'
    CLOSED = 'closed'
