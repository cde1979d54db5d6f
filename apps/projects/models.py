# projects/models.py

from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from trackportal.managers import ProjectManager
from utils.models import BaseModel

import logging

logger = logging.getLogger(__name__)


# =============================================================================
# GROUP MODELS
# =============================================================================

class Group(BaseModel):
    """Student group sharing one project (read-only from the track engine)"""

    STATUS_CHOICES = (
        ('forming', 'Forming'),
        ('complete', 'Complete'),
        ('locked', 'Locked'),
        ('disbanded', 'Disbanded'),
    )

    name = models.CharField("Group Name", max_length=100)
    semester = models.PositiveSmallIntegerField(
        "Semester",
        validators=[MinValueValidator(1), MaxValueValidator(8)]
    )
    academic_year = models.CharField("Academic Year", max_length=7)
    status = models.CharField("Status", max_length=20, choices=STATUS_CHOICES, default='forming')

    class Meta:
        verbose_name = "Group"
        verbose_name_plural = "Groups"
        ordering = ['semester', 'name']

    def __str__(self):
        return f"{self.name} (Sem {self.semester})"

    def is_member(self, student):
        """True when ``student`` is an active member of this group"""
        return self.members.filter(student=student, is_active=True).exists()


class GroupMember(BaseModel):
    """Membership of a student in a group"""

    ROLE_CHOICES = (
        ('leader', 'Leader'),
        ('member', 'Member'),
    )

    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='members')
    student = models.ForeignKey(
        'students.Student',
        on_delete=models.CASCADE,
        related_name='group_memberships'
    )
    role = models.CharField("Role", max_length=10, choices=ROLE_CHOICES, default='member')
    is_active = models.BooleanField("Is Active", default=True)
    joined_at = models.DateTimeField("Joined At", null=True, blank=True)

    class Meta:
        verbose_name = "Group Member"
        verbose_name_plural = "Group Members"
        unique_together = [('group', 'student')]

    def __str__(self):
        return f"{self.student} in {self.group} ({self.role})"


# =============================================================================
# PROJECT MODEL
# =============================================================================

class Project(BaseModel):
    """
    Project registration owned by a student or shared by a group.

    Status lifecycle:
        registered -> faculty_allocated -> active -> completed
        any non-terminal state -> cancelled

    ``cancelled`` and ``completed`` are sinks. A student who re-enters a
    track gets a fresh registration; cancelled rows are never revived.
    """

    PROJECT_TYPE_CHOICES = (
        ('minor1', 'Minor Project 1'),
        ('minor2', 'Minor Project 2'),
        ('minor3', 'Minor Project 3'),
        ('major1', 'Major Project 1'),
        ('major2', 'Major Project 2'),
        ('internship1', 'Internship 1'),
        ('internship2', 'Internship 2'),
    )

    STATUS_CHOICES = (
        ('registered', 'Registered'),
        ('faculty_allocated', 'Faculty Allocated'),
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    )

    ALLOWED_TRANSITIONS = {
        'registered': ('faculty_allocated', 'cancelled'),
        'faculty_allocated': ('active', 'cancelled'),
        'active': ('completed', 'cancelled'),
        'completed': (),
        'cancelled': (),
    }

    ALLOCATED_BY_CHOICES = (
        ('faculty_choice', 'Faculty Choice'),
        ('admin_allocation', 'Admin Allocation'),
    )

    # -------------------------------------------------------------------------
    # IDENTITY (preserved on cancellation)
    # -------------------------------------------------------------------------

    title = models.CharField("Title", max_length=200)
    description = models.TextField("Description", blank=True, default='')
    domain = models.CharField("Domain", max_length=100, blank=True)
    project_type = models.CharField("Project Type", max_length=20, choices=PROJECT_TYPE_CHOICES, db_index=True)
    semester = models.PositiveSmallIntegerField(
        "Semester",
        validators=[MinValueValidator(1), MaxValueValidator(8)],
        db_index=True
    )
    academic_year = models.CharField("Academic Year", max_length=7, db_index=True)
    start_date = models.DateTimeField("Start Date", null=True, blank=True)

    # Ownership: student XOR group
    student = models.ForeignKey(
        'students.Student',
        verbose_name="Student",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='projects'
    )
    group = models.ForeignKey(
        Group,
        verbose_name="Group",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='projects'
    )

    status = models.CharField("Status", max_length=20, choices=STATUS_CHOICES, default='registered', db_index=True)

    # -------------------------------------------------------------------------
    # LIVE WORKFLOW STATE (cleared on cancellation)
    # -------------------------------------------------------------------------

    faculty = models.ForeignKey(
        'faculty.Faculty',
        verbose_name="Faculty",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='supervised_projects'
    )
    allocated_by = models.CharField(
        "Allocated By",
        max_length=20,
        choices=ALLOCATED_BY_CHOICES,
        default='faculty_choice'
    )
    current_faculty_index = models.PositiveSmallIntegerField(
        "Current Faculty Index",
        default=0,
        validators=[MaxValueValidator(9)]
    )

    end_date = models.DateTimeField("End Date", null=True, blank=True)
    submission_deadline = models.DateTimeField("Submission Deadline", null=True, blank=True)

    grade = models.CharField("Grade", max_length=10, null=True, blank=True)
    feedback = models.TextField("Feedback", null=True, blank=True)
    evaluated_by = models.ForeignKey(
        'faculty.Faculty',
        verbose_name="Evaluated By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='evaluated_projects'
    )
    evaluated_at = models.DateTimeField("Evaluated At", null=True, blank=True)

    objects = ProjectManager()

    class Meta:
        verbose_name = "Project"
        verbose_name_plural = "Projects"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'semester', 'project_type']),
            models.Index(fields=['group', 'semester', 'project_type']),
        ]

    def __str__(self):
        return f"{self.title} ({self.get_project_type_display()})"

    def clean(self):
        if bool(self.student_id) == bool(self.group_id):
            raise ValidationError("A project is owned by exactly one of student or group")

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())

    def transition_to(self, new_status):
        """Move along the status lifecycle; raises ValidationError on an illegal move"""
        if not self.can_transition_to(new_status):
            raise ValidationError(
                f"Project {self.pk} cannot move from {self.status} to {new_status}"
            )
        self.status = new_status


# =============================================================================
# PROJECT CHILD RECORDS
# =============================================================================

class ProjectDeliverable(BaseModel):
    """Uploaded deliverable (cleared when the project is cancelled)"""

    FILE_TYPE_CHOICES = (
        ('ppt', 'Presentation'),
        ('pdf', 'PDF'),
        ('doc', 'Document'),
        ('video', 'Video'),
        ('other', 'Other'),
    )

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='deliverables')
    name = models.CharField("Name", max_length=150)
    deadline = models.DateTimeField("Deadline", null=True, blank=True)
    submitted = models.BooleanField("Submitted", default=False)
    submitted_at = models.DateTimeField("Submitted At", null=True, blank=True)
    file_path = models.CharField("File Path", max_length=255, blank=True)
    file_type = models.CharField("File Type", max_length=10, choices=FILE_TYPE_CHOICES, default='ppt')

    class Meta:
        ordering = ['deadline', 'name']

    def __str__(self):
        return f"{self.project_id}: {self.name}"


class FacultyPreference(BaseModel):
    """Ordered candidate faculty for allocation (cleared on cancellation)"""

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='faculty_preferences')
    faculty = models.ForeignKey('faculty.Faculty', on_delete=models.CASCADE, related_name='preferred_by')
    priority = models.PositiveSmallIntegerField(
        "Priority",
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )

    class Meta:
        ordering = ['priority']
        unique_together = [('project', 'priority')]

    def __str__(self):
        return f"{self.project_id} #{self.priority}: {self.faculty}"


class AllocationEvent(BaseModel):
    """
    Append-only allocation log entry.

    Preserved when a project is cancelled so the allocation trail stays
    auditable.
    """

    ACTION_CHOICES = (
        ('presented', 'Presented'),
        ('passed', 'Passed'),
        ('chosen', 'Chosen'),
    )

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name='allocation_history')
    faculty = models.ForeignKey(
        'faculty.Faculty',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='allocation_events'
    )
    priority = models.PositiveSmallIntegerField("Priority", null=True, blank=True)
    action = models.CharField("Action", max_length=10, choices=ACTION_CHOICES)
    timestamp = models.DateTimeField("Timestamp")
    comments = models.CharField("Comments", max_length=500, blank=True)

    class Meta:
        ordering = ['timestamp']

    def __str__(self):
        return f"{self.project_id}: {self.action} {self.faculty}"
