# tracks/services.py
"""
Track transition engine.

Admin-driven changes to a student's semester track and Internship 1
sub-track, and application review with its cross-track effects. Every
change keeps the student's projects, applications and workflow flags in
line with the new track.

Finalize and Internship 1 changes are all-or-nothing: one transaction per
call, and a database failure surfaces as TransactionFailure with nothing
written. Application review commits its primary update on its own and runs
two best-effort follow-up steps, each in its own transaction.
"""

from collections import namedtuple

from django.db import DatabaseError, transaction
import logging

from core.utils import get_current_academic_year, get_current_time, get_today
from internships.models import InternshipApplication
from internships.services import ApplicationSubmissionService
from projects.models import Project
from projects.services import reset_project_progress
from students.models import TrackSelection
from students.services import TrackChoiceService
from utils.audit import log_track_activity
from .exceptions import (
    CascadeSideEffectFailure,
    InvalidState,
    InvalidStatus,
    InvalidTargetTrack,
    NoChoiceSubmitted,
    ProjectAlreadyCompleted,
    TransactionFailure,
)
from .policies import (
    APPLICATION_PLACEHOLDER_COMPANY,
    INTERNSHIP1_TARGET_TRACKS,
    PROJECT_MARKER_COMPANY,
    REJECTED_APPLICATION_STATUSES,
    SEMESTER_TARGET_TRACKS,
    STORED_TRACKS,
    apply_track_flags,
    default_internship1_remarks,
    get_cascade_policy,
)

logger = logging.getLogger(__name__)


VERIFICATION_STATUSES = tuple(value for value, _ in TrackSelection.VERIFICATION_STATUS_CHOICES)
APPLICATION_STATUSES = tuple(value for value, _ in InternshipApplication.STATUS_CHOICES)

TRACK_CHANGE_NOTIFICATION_TITLE = 'Project Cancelled Due to Track Change'
INTERNSHIP1_NOTIFICATION_TITLE = 'Internship 1 Project Cancelled'


# =============================================================================
# RESULT TYPES
# =============================================================================

StepResult = namedtuple('StepResult', ['ok', 'skipped', 'error', 'detail'])


def _step_done(detail=''):
    return StepResult(ok=True, skipped=False, error=None, detail=detail)


def _step_skipped(detail=''):
    return StepResult(ok=True, skipped=True, error=None, detail=detail)


def _step_failed(error, detail=''):
    return StepResult(ok=False, skipped=False, error=error, detail=detail)


ReviewOutcome = namedtuple('ReviewOutcome', ['application', 'project_retirement', 'outcome_sync'])


class Internship1TrackChange(namedtuple(
        'Internship1TrackChange',
        ['previous_state', 'target_track', 'application', 'was_assignment'])):
    """Result of an Internship 1 sub-track change"""

    __slots__ = ()

    @property
    def message(self):
        action = 'assigned' if self.was_assignment else 'changed'
        target = 'Internship 1 Project' if self.target_track == 'project' else 'Summer Internship Application'
        return f"Track {action} to {target} successfully"


# =============================================================================
# LOOKUP HELPERS
# =============================================================================

def _public_track(semester, stored_track):
    """Stored coursework at Sem 8 is offered as major2"""
    if semester == 8 and stored_track == 'coursework':
        return 'major2'
    return stored_track


def get_internship1_project(student):
    """The student's non-cancelled Internship 1 project, or None"""
    return (
        Project.objects.owned_by(student)
        .for_semester(7)
        .filter(project_type='internship1')
        .live()
        .order_by('-created_at')
        .first()
    )


def get_latest_summer_application(student):
    """The authoritative (most recently created) summer application, or None"""
    return InternshipApplication.objects.for_student(student, semester=7).summer().latest_created()


def get_internship1_state(student):
    """
    Derive the student's Internship 1 sub-track from what exists.

    Returns:
        tuple: (state, project, application) where state is 'project' when a
        non-cancelled Internship 1 project exists, 'application' when any
        summer application exists, else 'none'
    """
    project = get_internship1_project(student)
    application = get_latest_summer_application(student)

    if project is not None:
        return 'project', project, application
    if application is not None:
        return 'application', None, application
    return 'none', None, None


def classify_internship1_track(project, application):
    """
    Roster label for an Internship 1 project and latest summer application.

    Returns one of 'project', 'project_pending', 'application',
    'application_pending' or 'none'.
    """
    if project is not None and project.status != 'cancelled':
        return 'project'
    if application is None:
        return 'none'
    if application.status == 'verified_pass':
        return 'application'
    if application.status in REJECTED_APPLICATION_STATUSES:
        return 'project_pending'
    return 'application_pending'


def describe_internship1_track(student):
    """Roster label for a student's Internship 1 sub-track"""
    return classify_internship1_track(
        get_internship1_project(student),
        get_latest_summer_application(student),
    )


def _clean_remarks(remarks):
    """Admin remarks as stripped text; request bodies may carry numbers or null"""
    return '' if remarks is None else str(remarks).strip()


def _run_atomic(operation, description, *args, **kwargs):
    """Run ``operation`` in one transaction; database errors become TransactionFailure"""
    try:
        with transaction.atomic():
            return operation(*args, **kwargs)
    except DatabaseError as e:
        logger.error(f"{description} rolled back: {e}", exc_info=True)
        raise TransactionFailure(f"{description} failed; no changes were saved") from e


# =============================================================================
# TRACK FINALIZATION (SEM 7 / SEM 8)
# =============================================================================

class TrackFinalizationService:
    """Service for admin finalization and change of a semester track."""

    @staticmethod
    def finalize_track(student_id, semester, target_track, verification_status=None,
                       remarks=None, reviewed_by=None):
        """
        Finalize (or change) a student's track for a semester.

        When the target differs from the track in force, the change is
        stamped on the selection, the workflow flags are reset from the
        policy table, and every project the old track owned is cancelled.
        An unchanged target only updates the verification status, remarks
        and review stamp.

        Args:
            student_id: Student primary key.
            semester (int): 7 or 8.
            target_track (str): internship/coursework (Sem 7) or internship/major2 (Sem 8).
            verification_status (str, optional): New verification status.
            remarks (str, optional): Admin remarks.
            reviewed_by (User, optional): Acting admin.

        Returns:
            TrackSelection: the refreshed selection
        """
        allowed = SEMESTER_TARGET_TRACKS.get(semester)
        if allowed is None:
            raise InvalidState(f"Track finalization is not offered in semester {semester}")
        if target_track not in allowed:
            raise InvalidTargetTrack(
                f"Invalid target track '{target_track}'. Must be one of: {', '.join(allowed)}"
            )
        if verification_status is not None and verification_status not in VERIFICATION_STATUSES:
            raise InvalidStatus(
                f"Invalid verification status '{verification_status}'. "
                f"Must be one of: {', '.join(VERIFICATION_STATUSES)}"
            )

        student = TrackChoiceService.get_student(student_id)

        if student.semester != semester:
            raise InvalidState(f"Sem {semester} finalize allowed only for semester {semester} students")

        if semester == 8 and target_track != 'major2' and student.get_sem8_student_type() == 'type1':
            raise InvalidTargetTrack(
                "Type 1 students (completed the Sem 7 internship) must be finalized to coursework (major2)"
            )

        selection = _run_atomic(
            TrackFinalizationService._finalize,
            f"Sem {semester} track finalization for {student.mis_number}",
            student, semester, target_track, verification_status, _clean_remarks(remarks), reviewed_by,
        )
        selection.refresh_from_db()
        return selection

    @staticmethod
    def _finalize(student, semester, target_track, verification_status, remarks, reviewed_by):
        academic_year = get_current_academic_year()
        current = student.get_semester_selection(semester, academic_year)
        if current is None:
            raise NoChoiceSubmitted("Student has not submitted a track choice yet")

        previous_stored = current.effective_track
        previous_track = _public_track(semester, previous_stored)
        track_changed = previous_track != target_track

        selection = student.finalize_semester_track(
            semester,
            STORED_TRACKS[target_track],
            reviewed_by=reviewed_by,
            remarks=remarks,
            academic_year=academic_year,
        )

        if verification_status:
            selection.verification_status = verification_status

        if not track_changed:
            selection.save()
            logger.info(
                f"Sem {semester} track confirmed for {student.mis_number}: {target_track} "
                f"(verification {selection.verification_status})"
            )
            return selection

        now = get_current_time()
        selection.previous_track = previous_stored
        selection.track_changed_by_admin_at = now
        selection.internship_outcome = 'provisional'
        selection.set_change_reason("Track changed by admin")
        selection.save()

        touched = apply_track_flags(student, semester, target_track)
        if touched:
            student.save(update_fields=touched)

        cancelled = TrackFinalizationService._cascade(student, semester, previous_track)

        log_track_activity(
            'TRACK_CHANGE',
            selection,
            student=student,
            old_values={'track': previous_track},
            new_values={
                'track': target_track,
                'cancelled_projects': [str(project.pk) for project in cancelled],
            },
            notes=remarks,
            additional_data={'semester': semester, 'academic_year': selection.academic_year},
        )

        logger.info(
            f"Sem {semester} track changed for {student.mis_number}: "
            f"{previous_track} -> {target_track}; {len(cancelled)} project(s) cancelled"
        )
        return selection

    @staticmethod
    def _cascade(student, semester, previous_track):
        """Cancel the projects owned by the track being left"""
        policy = get_cascade_policy(semester, previous_track)
        reason = (
            f"Cancelled due to a track change for {student.full_name} (MIS: {student.mis_number}). "
            f"The allocation history has been preserved for audit purposes."
        )

        candidates = []
        if policy.individual_types:
            candidates.extend(
                Project.objects.owned_by(student)
                .for_semester(semester)
                .of_types(policy.individual_types)
                .live()
            )
        if policy.group_types:
            candidates.extend(
                Project.objects.shared_with(student)
                .for_semester(semester)
                .of_types(policy.group_types)
                .live()
            )

        cancelled = []
        for project in candidates:
            if project.status == 'completed':
                logger.warning(
                    f"Skipping completed project {project.pk} ({project.project_type}) "
                    f"during track change for {student.mis_number}"
                )
                continue
            cancelled.append(reset_project_progress(project, TRACK_CHANGE_NOTIFICATION_TITLE, reason))
        return cancelled


# =============================================================================
# INTERNSHIP 1 SUB-TRACK
# =============================================================================

class Internship1TrackService:
    """Service for moving a Sem 7 coursework student between Internship 1 sub-tracks."""

    @staticmethod
    def change_track(student_id, target_track, remarks=None, changed_by=None):
        """
        Move a student to the Internship 1 project or the summer application track.

        Returns:
            Internship1TrackChange
        """
        if target_track not in INTERNSHIP1_TARGET_TRACKS:
            raise InvalidTargetTrack(
                f"Invalid target track '{target_track}'. Must be one of: {', '.join(INTERNSHIP1_TARGET_TRACKS)}"
            )

        student = TrackChoiceService.get_student(student_id)

        if student.semester != 7:
            raise InvalidState("Internship 1 track change allowed only for semester 7 students")

        selection = student.get_semester_selection(7, get_current_academic_year())
        if selection is None or selection.finalized_track != 'coursework':
            raise InvalidState("Student must be on the coursework track")

        return _run_atomic(
            Internship1TrackService._change,
            f"Internship 1 track change for {student.mis_number}",
            student, target_track, _clean_remarks(remarks), changed_by,
        )

    @staticmethod
    def _change(student, target_track, remarks, changed_by):
        state, project, application = get_internship1_state(student)

        if project is not None and project.status == 'completed':
            raise ProjectAlreadyCompleted(
                "Cannot change track for a completed Internship 1 project"
            )

        final_remarks = remarks or default_internship1_remarks(state, target_track, application)
        was_assignment = project is None and (
            application is None or application.status in REJECTED_APPLICATION_STATUSES
        )
        previous_track = None if state == 'none' else state
        now = get_current_time()

        if target_track == 'application':
            if project is not None:
                reset_project_progress(
                    project,
                    INTERNSHIP1_NOTIFICATION_TITLE,
                    f"Internship 1 project of {student.full_name} (MIS: {student.mis_number}) "
                    f"cancelled due to a track change. The allocation history has been preserved.",
                )
            touched = Internship1TrackService._to_application(
                student, application, final_remarks, previous_track, now
            )
        else:
            touched = Internship1TrackService._to_project(
                student, application, final_remarks, previous_track, now, changed_by
            )

        log_track_activity(
            'TRACK_CHANGE',
            touched,
            student=student,
            old_values={'internship1_track': state},
            new_values={'internship1_track': target_track},
            notes=final_remarks,
            additional_data={'semester': 7, 'was_assignment': was_assignment},
        )

        logger.info(
            f"Internship 1 track {'assigned' if was_assignment else 'changed'} for "
            f"{student.mis_number}: {state} -> {target_track}"
        )
        return Internship1TrackChange(state, target_track, touched, was_assignment)

    @staticmethod
    def _new_summer_application(student, status, company_name, marker, remarks, previous_track, now):
        today = get_today()
        return InternshipApplication(
            student=student,
            type='summer',
            semester=7,
            academic_year=get_current_academic_year(),
            status=status,
            company_name=company_name,
            start_date=today,
            end_date=today,
            admin_remarks=remarks,
            assignment_marker=marker,
            previous_internship1_track=previous_track,
            internship1_track_changed_by_admin_at=now,
        )

    @staticmethod
    def _to_application(student, application, remarks, previous_track, now):
        if application is None or application.status in REJECTED_APPLICATION_STATUSES:
            # Rejected rows stay as history; a fresh placeholder supersedes them
            new_application = Internship1TrackService._new_summer_application(
                student, 'submitted', APPLICATION_PLACEHOLDER_COMPANY, 'application_track',
                remarks, previous_track, now,
            )
            new_application.submitted_at = now
            new_application.save()
            return new_application

        if application.status == 'verified_pass':
            logger.info(
                f"Summer application {application.pk} already approved; "
                f"{student.mis_number} stays on the application track"
            )
            return application

        application.status = 'submitted'
        application.admin_remarks = remarks
        application.previous_internship1_track = previous_track
        application.internship1_track_changed_by_admin_at = now
        if not application.company_name:
            application.company_name = APPLICATION_PLACEHOLDER_COMPANY
        if not application.start_date:
            application.start_date = get_today()
        if not application.end_date:
            application.end_date = get_today()
        application.save()
        return application

    @staticmethod
    def _to_project(student, application, remarks, previous_track, now, changed_by):
        if application is None:
            marker = Internship1TrackService._new_summer_application(
                student, 'verified_fail', PROJECT_MARKER_COMPANY, 'project_track',
                remarks, previous_track, now,
            )
            marker.verified_at = now
            marker.verified_by = changed_by
            marker.save()
            return marker

        if application.status not in REJECTED_APPLICATION_STATUSES:
            application.status = 'verified_fail'

        application.admin_remarks = remarks
        application.verified_at = now
        application.verified_by = changed_by
        application.previous_internship1_track = previous_track
        application.internship1_track_changed_by_admin_at = now
        application.save()
        return application


# =============================================================================
# APPLICATION REVIEW
# =============================================================================

class ApplicationReviewService:
    """Service for admin review of internship applications."""

    @staticmethod
    def review_application(application_id, new_status, remarks='', reviewed_by=None):
        """
        Set an application's review status.

        The status update is committed first and stands on its own. Two
        follow-up steps then run in their own transactions and never undo
        it: an approved summer internship retires the student's Internship 1
        project, and the Sem 7 internship outcome and flags are re-derived
        from the new status.

        Returns:
            ReviewOutcome
        """
        if new_status not in APPLICATION_STATUSES:
            raise InvalidStatus(
                f"Invalid status '{new_status}'. Must be one of: {', '.join(APPLICATION_STATUSES)}"
            )

        application = ApplicationSubmissionService.get_application(application_id)

        previous_status = application.status

        application = _run_atomic(
            ApplicationReviewService._apply_review,
            f"Review of application {application.pk}",
            application, new_status, _clean_remarks(remarks), reviewed_by,
        )

        if application.type == 'summer' and new_status == 'verified_pass' and previous_status != 'verified_pass':
            project_retirement = ApplicationReviewService._best_effort(
                'project_retirement', ApplicationReviewService._retire_internship1_project, application
            )
        else:
            project_retirement = _step_skipped("No Internship 1 retirement needed")

        outcome_sync = ApplicationReviewService._best_effort(
            'outcome_sync', ApplicationReviewService._sync_internship_outcome, application
        )

        return ReviewOutcome(application, project_retirement, outcome_sync)

    @staticmethod
    def _apply_review(application, new_status, remarks, reviewed_by):
        previous_status = application.status
        now = get_current_time()

        application.status = new_status
        application.admin_remarks = remarks
        application.reviewed_by = reviewed_by
        application.reviewed_at = now
        if application.is_terminal:
            application.verified_at = now
            application.verified_by = reviewed_by
            application.verification_remarks = remarks or application.verification_remarks
        application.save()

        log_track_activity(
            'APPLICATION_REVIEW',
            application,
            student=application.student,
            old_values={'status': previous_status},
            new_values={'status': new_status},
            notes=remarks,
        )
        logger.info(f"Application {application.pk} reviewed: {previous_status} -> {new_status}")
        return application

    @staticmethod
    def _best_effort(step, operation, application):
        try:
            with transaction.atomic():
                return operation(application)
        except Exception as e:
            failure = CascadeSideEffectFailure(step, e)
            logger.error(
                f"Best-effort step {step} failed for application {application.pk}: {e}",
                exc_info=True,
            )
            return _step_failed(failure, str(failure))

    @staticmethod
    def _retire_internship1_project(application):
        student = application.student
        project = (
            Project.objects.owned_by(student)
            .for_semester(7)
            .filter(project_type='internship1')
            .resettable()
            .order_by('-created_at')
            .first()
        )
        if project is None:
            return _step_skipped("No live Internship 1 project")

        reset_project_progress(
            project,
            INTERNSHIP1_NOTIFICATION_TITLE,
            f"Summer internship of {student.full_name} (MIS: {student.mis_number}) was approved, "
            f"so the Internship 1 project is no longer needed.",
        )
        return _step_done(f"Cancelled Internship 1 project {project.pk}")

    @staticmethod
    def _sync_internship_outcome(application):
        student = application.student
        selection = student.get_semester_selection(7, get_current_academic_year())
        if selection is None:
            return _step_skipped("No Sem 7 selection")

        status = application.status
        if application.is_terminal:
            selection.internship_outcome = status
        elif status == 'pending_verification':
            selection.internship_outcome = 'provisional'
        selection.save()

        track = selection.finalized_track
        touched = apply_track_flags(student, 7, track, outcome=status) if track else []
        if touched:
            student.save(update_fields=touched)

        return _step_done(
            f"Sem 7 outcome {selection.internship_outcome}; "
            f"require_sem8_coursework={student.require_sem8_coursework}, "
            f"backlog_major1={student.backlog_major1}"
        )
