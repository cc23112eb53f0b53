from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BoothCreateRequest(BaseModel):
    expo_id: str
    booth_number: str = Field(min_length=1)
    title: str = ''
    capacity: int = Field(default=1, ge=1)
    allow_sharing: bool = False
    allow_waitlist: bool = False

    class Config:
        json_schema_extra = {
            'example': {
                'expo_id': '0192f1a4-9c4e-7b7e-8a0e-5d2c1f3b4a6e',
                'booth_number': 'A-12',
                'capacity': 1,
                'allow_sharing': False,
                'allow_waitlist': True,
            }
        }


class SessionCreateRequest(BaseModel):
    expo_id: str
    title: str = Field(min_length=1)
    session_number: Optional[str] = None
    max_attendees: Optional[int] = Field(default=None, ge=1)
    allow_waitlist: bool = True


class BoothMessageResponse(BaseModel):
    """Standard success body: ``{message, booth}``."""

    message: str
    booth: Dict[str, Any]


class SessionMessageResponse(BaseModel):
    message: str
    session: Dict[str, Any]


class MessageResponse(BaseModel):
    message: str
