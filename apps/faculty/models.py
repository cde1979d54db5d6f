# faculty/models.py

from django.conf import settings
from django.db import models
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# FACULTY MODEL
# =============================================================================

class Faculty(BaseModel):
    """Institute faculty member who can supervise projects"""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        verbose_name="User Account",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='faculty_profile'
    )
    full_name = models.CharField("Full Name", max_length=150)
    faculty_code = models.CharField("Faculty ID", max_length=20, unique=True)
    department = models.CharField("Department", max_length=100, blank=True)
    email = models.EmailField("Email", blank=True)
    is_active = models.BooleanField("Is Active", default=True)

    class Meta:
        verbose_name = "Faculty"
        verbose_name_plural = "Faculty"
        ordering = ['full_name']

    def __str__(self):
        return self.full_name


# =============================================================================
# FACULTY NOTIFICATION MODEL
# =============================================================================

class FacultyNotification(BaseModel):
    """
    Append-only notification addressed to a faculty member.

    Created as a side effect of cascades (e.g. a project cancelled by a
    track change); only ``dismissed`` changes afterwards.
    """

    TYPE_CHOICES = (
        ('project_cancelled', 'Project Cancelled'),
        ('track_change', 'Track Change'),
        ('allocation_change', 'Allocation Change'),
    )

    faculty = models.ForeignKey(
        Faculty,
        verbose_name="Faculty",
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField("Type", max_length=30, choices=TYPE_CHOICES)
    title = models.CharField("Title", max_length=200)
    message = models.TextField("Message", max_length=1000)

    project = models.ForeignKey(
        'projects.Project',
        verbose_name="Project",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='faculty_notifications'
    )
    student = models.ForeignKey(
        'students.Student',
        verbose_name="Student",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='faculty_notifications'
    )

    dismissed = models.BooleanField("Dismissed", default=False, db_index=True)
    dismissed_at = models.DateTimeField("Dismissed At", null=True, blank=True)

    class Meta:
        verbose_name = "Faculty Notification"
        verbose_name_plural = "Faculty Notifications"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['faculty', 'dismissed', 'created_at']),
            models.Index(fields=['type', 'dismissed']),
        ]

    def __str__(self):
        return f"{self.faculty}: {self.title}"
