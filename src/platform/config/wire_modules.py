"""
Wire Modules Configuration

Defines the modules that need dependency injection wiring.
Shared between production and test environments.
"""

from types import ModuleType

from src.service.expo.app.command import (
    booking_coordinator,
    create_expo_use_case,
    define_resource_use_case,
    manage_resource_use_case,
    mark_notification_read_use_case,
    update_expo_status_use_case,
)
from src.service.expo.app.query import (
    get_expo_use_case,
    get_resource_use_case,
    list_notifications_use_case,
)
from src.service.expo.driving_adapter.http_controller.auth import role_auth
from src.service.expo.driving_adapter.websocket import channel_controller


WIRE_MODULES: list[ModuleType] = [
    booking_coordinator,
    create_expo_use_case,
    define_resource_use_case,
    manage_resource_use_case,
    mark_notification_read_use_case,
    update_expo_status_use_case,
    get_expo_use_case,
    get_resource_use_case,
    list_notifications_use_case,
    role_auth,
    channel_controller,
]
