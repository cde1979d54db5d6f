# projects/services.py
"""
Project registration, faculty allocation and lifecycle.

Also hosts the shared reset used by every track cascade: a cancelled project
keeps its identity and allocation trail but loses all live workflow state.
"""

from django.db import transaction
from django.core.exceptions import ValidationError
import logging

from core.utils import get_current_academic_year, get_current_time, is_window_open
from faculty.services import NotificationService
from tracks.exceptions import InvalidState, ProjectAlreadyCompleted
from utils.audit import log_track_activity
from .models import Project, AllocationEvent, FacultyPreference

logger = logging.getLogger(__name__)

# Project types whose registration is gated by a submission window
REGISTRATION_WINDOW_KEYS = {
    'internship1': 'sem7.internship1.registrationWindow',
}


# =============================================================================
# SHARED RESET
# =============================================================================

def reset_project_progress(project, title, reason):
    """
    Cancel ``project`` and clear its live workflow state.

    The allocated faculty (if any) is notified first. Deliverables and
    faculty preferences are deleted; faculty, grade, feedback, evaluator and
    the end/submission dates are cleared; allocation method and index go
    back to their defaults. Title, description, domain, start date and the
    allocation history are kept.

    Runs under whatever transaction the caller holds.

    Args:
        project (Project): Project to cancel.
        title (str): Notification title.
        reason (str): Human-readable cause, used in the notification and log.

    Returns:
        Project: the cancelled project
    """
    if project.status == 'completed':
        raise ProjectAlreadyCompleted(
            f"Project {project.pk} is completed and cannot be cancelled"
        )
    if project.status == 'cancelled':
        logger.info(f"Project {project.pk} already cancelled; nothing to reset")
        return project

    previous_status = project.status
    previous_faculty = project.faculty

    if previous_faculty is not None:
        NotificationService.append(
            faculty=previous_faculty,
            type='project_cancelled',
            title=title,
            message=(
                f'The project "{project.title}" ({project.get_project_type_display()}, '
                f'Sem {project.semester}) has been cancelled. {reason}'
            ),
            project=project,
            student=project.student,
        )

    project.deliverables.all().delete()
    project.faculty_preferences.all().delete()

    project.transition_to('cancelled')
    project.faculty = None
    project.grade = None
    project.feedback = None
    project.evaluated_by = None
    project.evaluated_at = None
    project.end_date = None
    project.submission_deadline = None
    project.allocated_by = 'faculty_choice'
    project.current_faculty_index = 0
    project.set_change_reason(reason)
    project.save()

    log_track_activity(
        'PROJECT_CANCEL',
        project,
        student=project.student,
        old_values={
            'status': previous_status,
            'faculty': str(previous_faculty.pk) if previous_faculty else None,
        },
        new_values={'status': 'cancelled'},
        notes=reason,
    )

    logger.info(
        f"Project cancelled: {project.pk} ({project.project_type}, sem {project.semester}) "
        f"was {previous_status}; {reason}"
    )
    return project


# =============================================================================
# REGISTRATION & LIFECYCLE
# =============================================================================

class ProjectRegistrationService:
    """Service for registering projects and moving them through their lifecycle."""

    @staticmethod
    @transaction.atomic
    def register(title, project_type, semester, student=None, group=None,
                 description='', domain='', academic_year=None, faculty_preferences=None):
        """
        Register a fresh project for a student or a group.

        A cancelled registration is never revived; re-entering a track always
        creates a new row. Refuses when a live project of the same type and
        semester already exists for the owner.
        Internship 1 registration is guarded by
        sem7.internship1.registrationWindow.

        Args:
            faculty_preferences (list): Faculty in priority order (optional).

        Returns:
            Project
        """
        if (student is None) == (group is None):
            raise InvalidState("A project is registered for exactly one of student or group")

        window_key = REGISTRATION_WINDOW_KEYS.get(project_type)
        if window_key:
            window = is_window_open(window_key)
            if not window['is_open']:
                raise InvalidState(window['reason'], code='window_closed')

        existing = Project.objects.live().for_semester(semester).filter(project_type=project_type)
        existing = existing.filter(student=student) if student is not None else existing.filter(group=group)
        if existing.exists():
            owner = student or group
            raise InvalidState(
                f"{owner} already has a live {project_type} project for semester {semester}"
            )

        project = Project.objects.create(
            title=title,
            description=description,
            domain=domain,
            project_type=project_type,
            semester=semester,
            academic_year=academic_year or get_current_academic_year(),
            student=student,
            group=group,
        )

        for priority, faculty in enumerate(faculty_preferences or [], start=1):
            FacultyPreference.objects.create(project=project, faculty=faculty, priority=priority)

        logger.info(
            f"Project registered: {project.pk} {project_type} sem {semester} "
            f"for {'group ' + str(group.pk) if group else student.mis_number}"
        )
        return project

    @staticmethod
    def record_allocation_event(project, action, faculty=None, comments=''):
        """Append a presented/passed/chosen entry to the allocation history"""
        priority = None
        if faculty is not None:
            preference = project.faculty_preferences.filter(faculty=faculty).first()
            priority = preference.priority if preference else None

        return AllocationEvent.objects.create(
            project=project,
            faculty=faculty,
            priority=priority,
            action=action,
            timestamp=get_current_time(),
            comments=comments,
        )

    @staticmethod
    @transaction.atomic
    def present_to_next_faculty(project):
        """
        Present the project to the next faculty in preference order.

        Returns:
            Faculty or None when the preference list is exhausted
        """
        if project.status != 'registered':
            raise InvalidState(f"Project {project.pk} is not awaiting allocation")

        preferences = list(project.faculty_preferences.select_related('faculty'))
        if project.current_faculty_index >= len(preferences):
            return None

        faculty = preferences[project.current_faculty_index].faculty
        ProjectRegistrationService.record_allocation_event(project, 'presented', faculty)
        return faculty

    @staticmethod
    @transaction.atomic
    def pass_project(project, faculty, comments=''):
        """Faculty declines the project; it moves on to the next preference"""
        if project.status != 'registered':
            raise InvalidState(f"Project {project.pk} is not awaiting allocation")

        ProjectRegistrationService.record_allocation_event(project, 'passed', faculty, comments)
        project.current_faculty_index += 1
        project.save(update_fields=['current_faculty_index', 'updated_at'])
        return project

    @staticmethod
    @transaction.atomic
    def allocate_faculty(project, faculty, allocated_by='faculty_choice', comments=''):
        """Allocate ``faculty`` to the project and log the choice"""
        try:
            project.transition_to('faculty_allocated')
        except ValidationError as e:
            raise InvalidState(e.messages[0])

        project.faculty = faculty
        project.allocated_by = allocated_by
        project.save()

        ProjectRegistrationService.record_allocation_event(project, 'chosen', faculty, comments)
        NotificationService.append(
            faculty=faculty,
            type='allocation_change',
            title='Project Allocated',
            message=f'You have been allocated the project "{project.title}".',
            project=project,
            student=project.student,
        )

        logger.info(f"Faculty {faculty} allocated to project {project.pk} ({allocated_by})")
        return project

    @staticmethod
    @transaction.atomic
    def start(project, start_date=None, submission_deadline=None):
        try:
            project.transition_to('active')
        except ValidationError as e:
            raise InvalidState(e.messages[0])

        project.start_date = start_date or project.start_date or get_current_time()
        if submission_deadline:
            project.submission_deadline = submission_deadline
        project.save()
        logger.info(f"Project {project.pk} started")
        return project

    @staticmethod
    @transaction.atomic
    def complete(project, grade=None, feedback=None, evaluated_by=None):
        """Close the project as completed; completed projects are never cascaded"""
        try:
            project.transition_to('completed')
        except ValidationError as e:
            raise InvalidState(e.messages[0])

        now = get_current_time()
        project.end_date = now
        project.grade = grade
        project.feedback = feedback
        project.evaluated_by = evaluated_by
        project.evaluated_at = now if evaluated_by else None
        project.save()
        logger.info(f"Project {project.pk} completed with grade {grade}")
        return project
