# internships/services.py
"""
Student-side internship application submission.

Admin review and the Internship 1 track change live in tracks.services.
"""

from django.db import transaction
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
import logging

from core.utils import get_current_academic_year, get_current_time, is_window_open
from tracks.exceptions import InvalidState, NotFound
from .models import InternshipApplication

logger = logging.getLogger(__name__)


SUBMISSION_WINDOW_KEYS = {
    '6month': 'sem7.sixMonthSubmissionWindow',
    'summer': 'sem7.internship2.evidenceWindow',
}

REQUIRED_LINK_FIELDS = {
    '6month': 'offer_letter_link',
    'summer': 'completion_certificate_link',
}

DETAIL_FIELDS = (
    'company_name',
    'location',
    'start_date',
    'end_date',
    'mentor_name',
    'mentor_email',
    'mentor_phone',
    'role',
    'mode',
    'has_stipend',
    'stipend_amount',
    'offer_letter_link',
    'completion_certificate_link',
)

_validate_url = URLValidator(schemes=['http', 'https'])


def _validate_required_link(application_type, details):
    field = REQUIRED_LINK_FIELDS[application_type]
    link = (details.get(field) or '').strip()
    if not link:
        raise InvalidState(f"{field.replace('_', ' ').capitalize()} is required")
    try:
        _validate_url(link)
    except ValidationError:
        raise InvalidState(f"{field.replace('_', ' ').capitalize()} must be a valid http(s) URL")


def _apply_details(application, details):
    for field in DETAIL_FIELDS:
        if field in details:
            value = details[field]
            setattr(application, field, value.strip() if isinstance(value, str) else value)


# =============================================================================
# APPLICATION SUBMISSION SERVICES
# =============================================================================

class ApplicationSubmissionService:
    """Service for students submitting and editing internship evidence."""

    @staticmethod
    def get_application(application_id):
        try:
            return InternshipApplication.objects.select_related('student').get(pk=application_id)
        except (InternshipApplication.DoesNotExist, ValueError, ValidationError):
            raise NotFound(f"Application {application_id} not found")

    @staticmethod
    @transaction.atomic
    def submit(student, application_type, details):
        """
        Submit a new internship application.

        Guarded by the type's submission window. A 6-month application needs
        an offer letter link, a summer one a completion certificate link.

        Args:
            student (Student): Submitting student.
            application_type (str): '6month' or 'summer'.
            details (dict): Detail field values.

        Returns:
            InternshipApplication
        """
        if application_type not in SUBMISSION_WINDOW_KEYS:
            raise InvalidState(f"Invalid application type '{application_type}'")
        if student.semester != 7:
            raise InvalidState("Internship applications are accepted from semester 7 students only")

        window = is_window_open(SUBMISSION_WINDOW_KEYS[application_type])
        if not window['is_open']:
            raise InvalidState(window['reason'], code='window_closed')

        _validate_required_link(application_type, details)

        application = InternshipApplication(
            student=student,
            type=application_type,
            semester=7,
            academic_year=get_current_academic_year(),
            status='submitted',
            submitted_at=get_current_time(),
        )
        _apply_details(application, details)
        application.save()

        logger.info(
            f"Internship application submitted: {application.pk} ({application_type}) "
            f"by {student.mis_number}"
        )
        return application

    @staticmethod
    @transaction.atomic
    def update_details(application, details):
        """
        Let the student edit a submitted or needs-info application.

        Filling in details turns an admin placeholder into a regular
        application, so the assignment marker is cleared and the status goes
        back to submitted.
        """
        if not application.is_editable:
            raise InvalidState(
                f"Application cannot be edited in status '{application.status}'"
            )

        merged = {
            field: getattr(application, field) for field in REQUIRED_LINK_FIELDS.values()
        }
        merged.update(details)
        _validate_required_link(application.type, merged)

        _apply_details(application, details)
        application.assignment_marker = ''
        application.status = 'submitted'
        application.submitted_at = get_current_time()
        application.save()

        logger.info(f"Internship application {application.pk} updated by student")
        return application
