# students/services.py
"""
Student self-service track choice.

Admin-driven changes and their cascades live in tracks.services; this module
only records what the student asked for.
"""

from django.core.exceptions import ValidationError
from django.db import transaction
import logging

from core.utils import get_current_academic_year, get_current_time, is_window_open
from tracks.exceptions import InvalidState, InvalidTargetTrack, NotFound
from tracks.policies import SEMESTER_TARGET_TRACKS, STORED_TRACKS, apply_track_flags
from .models import Student, TrackSelection

logger = logging.getLogger(__name__)


# =============================================================================
# TRACK CHOICE SERVICES
# =============================================================================

class TrackChoiceService:
    """Service for recording a student's own track choice."""

    @staticmethod
    def get_student(student_id):
        try:
            return Student.objects.get(pk=student_id)
        except (Student.DoesNotExist, ValueError, ValidationError):
            raise NotFound(f"Student {student_id} not found")

    @staticmethod
    @transaction.atomic
    def submit_choice(student, semester, chosen_track):
        """
        Record the student's choice for the current academic year.

        Guarded by the semester's choice window (sem7.choiceWindow,
        sem8.choiceWindow).

        Sem 7 accepts internship/coursework; Sem 8 accepts internship/major2
        and only from type 2 students (type 1 students are placed on
        coursework automatically). The choice is auto-finalized unless an
        admin has already changed this selection's track.

        Returns:
            TrackSelection
        """
        allowed = SEMESTER_TARGET_TRACKS.get(semester)
        if allowed is None:
            raise InvalidState(f"Track choice is not offered in semester {semester}")
        if chosen_track not in allowed:
            raise InvalidTargetTrack(
                f"Invalid track '{chosen_track}'. Must be one of: {', '.join(allowed)}"
            )
        if student.semester != semester:
            raise InvalidState(f"Sem {semester} choice allowed only for semester {semester} students")
        if semester == 8 and student.get_sem8_student_type() != 'type2':
            raise InvalidState(
                "Track selection is only available for Type 2 students. "
                "Type 1 students are automatically enrolled in coursework."
            )

        window = is_window_open(f"sem{semester}.choiceWindow")
        if not window['is_open']:
            raise InvalidState(window['reason'], code='window_closed')

        stored_track = STORED_TRACKS[chosen_track]
        academic_year = get_current_academic_year()

        selection, created = TrackSelection.objects.get_or_create(
            student=student,
            semester=semester,
            academic_year=academic_year,
            defaults={'chosen_track': stored_track},
        )
        selection.chosen_track = stored_track
        selection.choice_submitted_at = get_current_time()

        if not selection.track_changed_by_admin_at:
            selection.finalized_track = stored_track
            if semester == 7 and not selection.internship_outcome:
                selection.internship_outcome = 'provisional'
            if apply_track_flags(student, semester, stored_track):
                student.save(update_fields=['require_sem8_coursework', 'backlog_major1'])
        else:
            logger.info(
                f"Sem {semester} choice for {student.mis_number} recorded; "
                f"admin-finalized track {selection.finalized_track} kept"
            )

        selection.save()

        logger.info(
            f"Track choice {'submitted' if created else 'updated'}: "
            f"{student.mis_number} sem {semester} -> {chosen_track} ({academic_year})"
        )
        return selection

    @staticmethod
    @transaction.atomic
    def initialize_sem8_for_type1(student):
        """
        Place a type 1 Sem 8 student on the coursework track.

        Idempotent: an existing selection for the current year is returned
        unchanged.
        """
        if student.semester != 8 or student.get_sem8_student_type() != 'type1':
            raise InvalidState("Only Sem 8 Type 1 students are initialized automatically")

        academic_year = get_current_academic_year()
        selection, created = TrackSelection.objects.get_or_create(
            student=student,
            semester=8,
            academic_year=academic_year,
            defaults={
                'chosen_track': 'coursework',
                'finalized_track': 'coursework',
                'verification_status': 'approved',
                'choice_submitted_at': get_current_time(),
            },
        )
        if created:
            logger.info(f"Initialized Sem 8 coursework track for type 1 student {student.mis_number}")
        return selection
