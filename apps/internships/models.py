# internships/models.py

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from trackportal.managers import InternshipApplicationManager
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# INTERNSHIP APPLICATION MODEL
# =============================================================================

class InternshipApplication(BaseModel):
    """
    Internship evidence submitted by a student (or created by an admin).

    Status lifecycle:
        submitted -> needs_info / pending_verification
        -> verified_pass | verified_fail | absent

    A student may hold several applications of the same type over time; the
    most recently created one is authoritative and older rows are history.
    """

    TYPE_CHOICES = (
        ('6month', 'Six-Month Internship'),
        ('summer', 'Summer Internship'),
    )

    STATUS_CHOICES = (
        ('submitted', 'Submitted'),
        ('needs_info', 'Needs Info'),
        ('pending_verification', 'Pending Verification'),
        ('verified_pass', 'Verified Pass'),
        ('verified_fail', 'Verified Fail'),
        ('absent', 'Absent'),
    )

    TERMINAL_STATUSES = ('verified_pass', 'verified_fail', 'absent')
    EDITABLE_STATUSES = ('submitted', 'needs_info')

    MODE_CHOICES = (
        ('onsite', 'Onsite'),
        ('remote', 'Remote'),
        ('hybrid', 'Hybrid'),
    )

    INTERNSHIP1_TRACK_CHOICES = (
        ('project', 'Internship 1 Project'),
        ('application', 'Summer Internship Application'),
    )

    ASSIGNMENT_MARKER_CHOICES = (
        ('', 'None'),
        ('project_track', 'Assigned to Internship 1 Project'),
        ('application_track', 'Assigned to Summer Internship Application'),
    )

    student = models.ForeignKey(
        'students.Student',
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='internship_applications'
    )
    type = models.CharField("Type", max_length=10, choices=TYPE_CHOICES, db_index=True)
    semester = models.PositiveSmallIntegerField(
        "Semester",
        validators=[MinValueValidator(1), MaxValueValidator(8)],
        default=7
    )
    academic_year = models.CharField("Academic Year", max_length=7, blank=True)
    status = models.CharField(
        "Status",
        max_length=25,
        choices=STATUS_CHOICES,
        default='submitted',
        db_index=True
    )

    # -------------------------------------------------------------------------
    # INTERNSHIP DETAILS
    # -------------------------------------------------------------------------

    company_name = models.CharField("Company Name", max_length=200, blank=True)
    location = models.CharField("Location", max_length=200, blank=True)
    start_date = models.DateField("Start Date", null=True, blank=True)
    end_date = models.DateField("End Date", null=True, blank=True)
    mentor_name = models.CharField("Mentor Name", max_length=150, blank=True)
    mentor_email = models.CharField("Mentor Email", max_length=254, blank=True)
    mentor_phone = models.CharField("Mentor Phone", max_length=30, blank=True)
    role = models.CharField("Role", max_length=150, blank=True)
    mode = models.CharField("Mode", max_length=10, choices=MODE_CHOICES, default='onsite')
    has_stipend = models.BooleanField("Has Stipend", default=False)
    stipend_amount = models.DecimalField(
        "Stipend Amount",
        max_digits=10,
        decimal_places=2,
        default=0
    )
    offer_letter_link = models.URLField("Offer Letter Link", max_length=500, blank=True)
    completion_certificate_link = models.URLField("Completion Certificate Link", max_length=500, blank=True)

    # -------------------------------------------------------------------------
    # REVIEW
    # -------------------------------------------------------------------------

    submitted_at = models.DateTimeField("Submitted At", null=True, blank=True)
    admin_remarks = models.TextField("Admin Remarks", blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Reviewed By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_internship_applications'
    )
    reviewed_at = models.DateTimeField("Reviewed At", null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Verified By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verified_internship_applications'
    )
    verified_at = models.DateTimeField("Verified At", null=True, blank=True)
    verification_remarks = models.TextField("Verification Remarks", blank=True)

    # -------------------------------------------------------------------------
    # INTERNSHIP 1 TRACK CHANGE TRACKING
    # -------------------------------------------------------------------------

    assignment_marker = models.CharField(
        "Assignment Marker",
        max_length=20,
        choices=ASSIGNMENT_MARKER_CHOICES,
        blank=True,
        default=''
    )
    previous_internship1_track = models.CharField(
        "Previous Internship 1 Track",
        max_length=15,
        choices=INTERNSHIP1_TRACK_CHOICES,
        null=True,
        blank=True
    )
    internship1_track_changed_by_admin_at = models.DateTimeField(
        "Internship 1 Track Changed By Admin At",
        null=True,
        blank=True
    )

    objects = InternshipApplicationManager()

    class Meta:
        verbose_name = "Internship Application"
        verbose_name_plural = "Internship Applications"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'type', 'created_at']),
        ]

    def __str__(self):
        return f"{self.get_type_display()} - {self.company_name or 'N/A'} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_editable(self):
        return self.status in self.EDITABLE_STATUSES

    @property
    def is_project_marker(self):
        """Admin-created record standing in for an Internship 1 project assignment"""
        return self.assignment_marker == 'project_track'

    @property
    def is_placeholder(self):
        """Admin-created application waiting for the student to fill in details"""
        return self.assignment_marker == 'application_track'
