"""Expo Domain Enums"""

from src.service.expo.domain.enum.expo_status import ExpoStatus
from src.service.expo.domain.enum.notification_enum import NotificationStatus, NotificationType
from src.service.expo.domain.enum.resource_status import ResourceStatus

__all__ = ['ExpoStatus', 'NotificationStatus', 'NotificationType', 'ResourceStatus']
