from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.service.expo.domain.entity.expo_entity import Expo
from src.service.expo.domain.enum import ExpoStatus


class ExpoCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ''
    allow_booth_sharing: bool = False
    max_booths_per_exhibitor: int = Field(default=1, ge=1)

    class Config:
        json_schema_extra = {
            'example': {
                'title': 'Tech Innovation Expo',
                'description': 'Hardware, software and everything in between',
                'allow_booth_sharing': False,
                'max_booths_per_exhibitor': 2,
            }
        }


class ExpoStatusUpdateRequest(BaseModel):
    status: ExpoStatus


class ExpoSettingsResponse(BaseModel):
    allow_booth_sharing: bool
    max_booths_per_exhibitor: int


class ExpoStatisticsResponse(BaseModel):
    registered_exhibitors: int
    registered_attendees: int


class ExpoResponse(BaseModel):
    id: str
    title: str
    description: str
    organizer_id: str
    status: ExpoStatus
    settings: ExpoSettingsResponse
    statistics: ExpoStatisticsResponse
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, expo: Expo) -> 'ExpoResponse':
        return cls(
            id=expo.id,
            title=expo.title,
            description=expo.description,
            organizer_id=expo.organizer_id,
            status=expo.status,
            settings=ExpoSettingsResponse(
                allow_booth_sharing=expo.settings.allow_booth_sharing,
                max_booths_per_exhibitor=expo.settings.max_booths_per_exhibitor,
            ),
            statistics=ExpoStatisticsResponse(
                registered_exhibitors=expo.statistics.registered_exhibitors,
                registered_attendees=expo.statistics.registered_attendees,
            ),
            created_at=expo.created_at,
        )


class ExpoMessageResponse(BaseModel):
    message: str
    expo: ExpoResponse
