from enum import StrEnum


class ExpoStatus(StrEnum):
    DRAFT = 'draft'
    PUBLISHED = 'published'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
