"""Shared Kernel Domain Layer"""

from src.service.shared_kernel.domain.enum import BookingEventKind, ResourceKind

__all__ = ['BookingEventKind', 'ResourceKind']
