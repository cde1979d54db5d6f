# faculty/services.py
"""
Notification sink for faculty members.
"""

import logging

from core.utils import get_current_time
from .models import FacultyNotification

logger = logging.getLogger(__name__)


class NotificationService:
    """Append-only faculty notifications."""

    MAX_MESSAGE_LENGTH = 1000

    @staticmethod
    def append(faculty, type, title, message, project=None, student=None):
        """
        Append a notification for ``faculty``.

        Runs under the caller's transaction, so a notification written during
        a track change is committed or rolled back together with it.
        """
        notification = FacultyNotification.objects.create(
            faculty=faculty,
            type=type,
            title=title[:200],
            message=message[:NotificationService.MAX_MESSAGE_LENGTH],
            project=project,
            student=student,
        )
        logger.info(f"Notified {faculty} ({type}): {title}")
        return notification

    @staticmethod
    def dismiss(notification):
        """Mark a notification as dismissed (the only mutation allowed)"""
        if notification.dismissed:
            return notification
        notification.dismissed = True
        notification.dismissed_at = get_current_time()
        notification.save(update_fields=['dismissed', 'dismissed_at'])
        return notification

    @staticmethod
    def get_active_notifications(faculty):
        return FacultyNotification.objects.filter(faculty=faculty, dismissed=False).order_by('-created_at')
