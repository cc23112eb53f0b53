"""Expo Domain Events"""

from src.service.expo.domain.domain_event.booking_event import BookingEvent

__all__ = ['BookingEvent']
