from enum import StrEnum


class NotificationType(StrEnum):
    BOOTH_BOOKING = 'booth_booking'
    SESSION_REGISTRATION = 'session_registration'


class NotificationStatus(StrEnum):
    UNREAD = 'unread'
    READ = 'read'
