# students/models.py

from django.conf import settings
from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT MODEL
# =============================================================================

class Student(BaseModel):
    """Core model for student information and semester workflow flags"""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        verbose_name="User Account",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='student_profile'
    )

    full_name = models.CharField("Full Name", max_length=150)
    mis_number = models.CharField("MIS Number", max_length=20, unique=True, db_index=True)
    college_email = models.EmailField("College Email", blank=True)
    contact_number = models.CharField("Contact Number", max_length=20, blank=True)
    branch = models.CharField("Branch", max_length=50, blank=True)

    semester = models.PositiveSmallIntegerField(
        "Current Semester",
        validators=[MinValueValidator(1), MaxValueValidator(8)],
        db_index=True
    )

    # -------------------------------------------------------------------------
    # WORKFLOW FLAGS (set by the track policy table)
    # -------------------------------------------------------------------------

    require_sem8_coursework = models.BooleanField(
        "Requires Sem 8 Coursework",
        default=False,
        help_text="Set when the student takes the internship track in Sem 7"
    )
    backlog_major1 = models.BooleanField(
        "Major Project 1 Backlog",
        default=False,
        help_text="Set when a Sem 7 internship is verified as failed or absent"
    )

    class Meta:
        verbose_name = "Student"
        verbose_name_plural = "Students"
        ordering = ['mis_number']

    def __str__(self):
        return f"{self.full_name} ({self.mis_number})"

    # -------------------------------------------------------------------------
    # TRACK SELECTION HELPERS
    # -------------------------------------------------------------------------

    def get_semester_selection(self, semester, academic_year=None):
        """
        Get the track selection for a semester.

        With ``academic_year`` only that year's selection is returned (or
        None). Without it, the most recent selection for the semester.
        """
        selections = self.track_selections.filter(semester=semester)
        if academic_year:
            return selections.filter(academic_year=academic_year).first()
        return selections.order_by('-academic_year', '-created_at').first()

    def finalize_semester_track(self, semester, finalized_track, reviewed_by=None,
                                remarks='', academic_year=None):
        """Set the admin-confirmed track on an existing selection"""
        from core.utils import get_current_time

        selection = self.get_semester_selection(semester, academic_year)
        if selection is None:
            return None

        selection.finalized_track = finalized_track
        selection.reviewed_by = reviewed_by
        selection.reviewed_at = get_current_time()
        if remarks:
            selection.admin_remarks = remarks
        return selection

    def get_sem8_student_type(self):
        """
        Classify a Sem 8 student from their Sem 7 outcome.

        Returns:
            'type1' - completed the Sem 7 internship track with a verified pass
            'type2' - took the Sem 7 coursework track
            None    - anything else
        """
        sem7 = self.get_semester_selection(7)
        if sem7 is None:
            return None
        if sem7.finalized_track == 'internship' and sem7.internship_outcome == 'verified_pass':
            return 'type1'
        if sem7.finalized_track == 'coursework':
            return 'type2'
        return None


# =============================================================================
# TRACK SELECTION MODEL
# =============================================================================

class TrackSelection(BaseModel):
    """
    A student's track for one semester of one academic year.

    ``previous_track`` is a single-slot undo buffer: it holds the last
    finalized track before the most recent admin change and is set if and
    only if ``track_changed_by_admin_at`` is set.
    """

    TRACK_CHOICES = (
        ('internship', 'Internship'),
        ('coursework', 'Coursework'),
    )

    VERIFICATION_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('needs_info', 'Needs Info'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    )

    INTERNSHIP_OUTCOME_CHOICES = (
        ('provisional', 'Provisional'),
        ('verified_pass', 'Verified Pass'),
        ('verified_fail', 'Verified Fail'),
        ('absent', 'Absent'),
    )

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='track_selections'
    )
    semester = models.PositiveSmallIntegerField(
        "Semester",
        validators=[MinValueValidator(1), MaxValueValidator(8)]
    )
    academic_year = models.CharField("Academic Year", max_length=7)

    chosen_track = models.CharField("Chosen Track", max_length=20, choices=TRACK_CHOICES)
    finalized_track = models.CharField(
        "Finalized Track",
        max_length=20,
        choices=TRACK_CHOICES,
        null=True,
        blank=True
    )
    previous_track = models.CharField(
        "Previous Track",
        max_length=20,
        choices=TRACK_CHOICES,
        null=True,
        blank=True
    )
    track_changed_by_admin_at = models.DateTimeField("Track Changed By Admin At", null=True, blank=True)

    verification_status = models.CharField(
        "Verification Status",
        max_length=20,
        choices=VERIFICATION_STATUS_CHOICES,
        default='pending'
    )
    internship_outcome = models.CharField(
        "Internship Outcome",
        max_length=20,
        choices=INTERNSHIP_OUTCOME_CHOICES,
        null=True,
        blank=True
    )

    admin_remarks = models.TextField("Admin Remarks", blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        verbose_name="Reviewed By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_track_selections'
    )
    reviewed_at = models.DateTimeField("Reviewed At", null=True, blank=True)
    choice_submitted_at = models.DateTimeField("Choice Submitted At", null=True, blank=True)

    class Meta:
        verbose_name = "Track Selection"
        verbose_name_plural = "Track Selections"
        ordering = ['student', 'semester', '-academic_year']
        unique_together = [('student', 'semester', 'academic_year')]
        indexes = [
            models.Index(fields=['semester', 'academic_year']),
            models.Index(fields=['finalized_track']),
        ]

    def __str__(self):
        track = self.effective_track
        return f"{self.student_id} sem {self.semester} {self.academic_year}: {track}"

    @property
    def effective_track(self):
        """The track in force: finalized if set, else the student's choice"""
        return self.finalized_track or self.chosen_track

    def clean(self):
        if bool(self.previous_track) != bool(self.track_changed_by_admin_at):
            raise ValidationError(
                "previous_track and track_changed_by_admin_at must be set together"
            )
        if self.previous_track and self.finalized_track and self.previous_track == self.finalized_track:
            raise ValidationError("previous_track cannot equal finalized_track")
