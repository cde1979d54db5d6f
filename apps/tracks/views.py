# tracks/views.py

"""
Thin JSON handlers for track transitions.

Each handler parses the request, calls one service and maps the error
taxonomy onto HTTP status codes. No business rule lives here.
"""

import json
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods
import logging

from core.utils import get_current_time
from students.services import TrackChoiceService
from .exceptions import InvalidState, NotFound, TransactionFailure
from .services import (
    ApplicationReviewService,
    Internship1TrackService,
    TrackFinalizationService,
)
from .stats import build_internship1_roster_workbook, get_internship1_roster

logger = logging.getLogger(__name__)


# =============================================================================
# HELPERS
# =============================================================================

def staff_required(view_func):
    """Reject non-staff users with a JSON 403"""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_staff:
            return JsonResponse({'success': False, 'message': 'Admin access required'}, status=403)
        return view_func(request, *args, **kwargs)
    return wrapper


def _parse_body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (TypeError, ValueError):
        raise InvalidState("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise InvalidState("Request body must be a JSON object")
    return data


def _error_response(error):
    if isinstance(error, NotFound):
        return JsonResponse({'success': False, 'message': error.message}, status=NotFound.status_code)
    if isinstance(error, InvalidState):
        return JsonResponse(
            {'success': False, 'message': error.messages[0], 'code': error.code},
            status=InvalidState.status_code
        )
    if isinstance(error, TransactionFailure):
        return JsonResponse(
            {'success': False, 'message': str(error), 'retryable': error.retryable},
            status=TransactionFailure.status_code
        )
    raise error


def serialize_selection(selection):
    return {
        'id': str(selection.pk),
        'student': str(selection.student_id),
        'semester': selection.semester,
        'academic_year': selection.academic_year,
        'chosen_track': selection.chosen_track,
        'finalized_track': selection.finalized_track,
        'previous_track': selection.previous_track,
        'track_changed_by_admin_at': selection.track_changed_by_admin_at,
        'verification_status': selection.verification_status,
        'internship_outcome': selection.internship_outcome,
        'admin_remarks': selection.admin_remarks,
        'reviewed_at': selection.reviewed_at,
    }


def serialize_application(application):
    return {
        'id': str(application.pk),
        'student': str(application.student_id),
        'type': application.type,
        'status': application.status,
        'company_name': application.company_name,
        'admin_remarks': application.admin_remarks,
        'assignment_marker': application.assignment_marker,
        'previous_internship1_track': application.previous_internship1_track,
        'internship1_track_changed_by_admin_at': application.internship1_track_changed_by_admin_at,
        'verified_at': application.verified_at,
    }


def _serialize_step(step):
    return {'ok': step.ok, 'skipped': step.skipped, 'detail': step.detail}


# =============================================================================
# ADMIN: TRACK FINALIZATION
# =============================================================================

@login_required
@staff_required
@require_http_methods(["POST", "PATCH"])
def finalize_track(request, student_id, semester):
    """Finalize or change a student's Sem 7 / Sem 8 track"""
    try:
        data = _parse_body(request)
        selection = TrackFinalizationService.finalize_track(
            student_id,
            semester,
            data.get('finalized_track'),
            verification_status=data.get('verification_status'),
            remarks=data.get('remarks'),
            reviewed_by=request.user,
        )
    except (NotFound, InvalidState, TransactionFailure) as e:
        return _error_response(e)

    changed = bool(selection.track_changed_by_admin_at)
    return JsonResponse({
        'success': True,
        'data': serialize_selection(selection),
        'message': f"Track {'changed' if changed else 'finalized'} successfully",
    })


@login_required
@staff_required
@require_http_methods(["POST", "PATCH"])
def change_internship1_track(request, student_id):
    """Move a Sem 7 coursework student between Internship 1 sub-tracks"""
    try:
        data = _parse_body(request)
        change = Internship1TrackService.change_track(
            student_id,
            data.get('target_track'),
            remarks=data.get('remarks'),
            changed_by=request.user,
        )
    except (NotFound, InvalidState, TransactionFailure) as e:
        return _error_response(e)

    return JsonResponse({
        'success': True,
        'message': change.message,
        'data': {
            'previous_state': change.previous_state,
            'target_track': change.target_track,
            'was_assignment': change.was_assignment,
            'application': serialize_application(change.application),
        },
    })


# =============================================================================
# ADMIN: APPLICATION REVIEW
# =============================================================================

@login_required
@staff_required
@require_http_methods(["POST", "PATCH"])
def review_application(request, application_id):
    try:
        data = _parse_body(request)
        outcome = ApplicationReviewService.review_application(
            application_id,
            data.get('status'),
            remarks=data.get('admin_remarks', ''),
            reviewed_by=request.user,
        )
    except (NotFound, InvalidState, TransactionFailure) as e:
        return _error_response(e)

    return JsonResponse({
        'success': True,
        'data': serialize_application(outcome.application),
        'project_retirement': _serialize_step(outcome.project_retirement),
        'outcome_sync': _serialize_step(outcome.outcome_sync),
    })


# =============================================================================
# STUDENT: TRACK CHOICE
# =============================================================================

@login_required
@require_http_methods(["POST"])
def submit_track_choice(request, semester):
    student = getattr(request.user, 'student_profile', None)
    if student is None:
        return JsonResponse({'success': False, 'message': 'Student profile not found'}, status=404)

    try:
        data = _parse_body(request)
        selection = TrackChoiceService.submit_choice(student, semester, data.get('chosen_track'))
    except (NotFound, InvalidState, TransactionFailure) as e:
        return _error_response(e)

    return JsonResponse({'success': True, 'data': serialize_selection(selection)})


# =============================================================================
# ADMIN: INTERNSHIP 1 ROSTER
# =============================================================================

@login_required
@staff_required
@require_http_methods(["GET"])
def internship1_roster(request):
    rows = get_internship1_roster(request.GET.get('academic_year'))
    return JsonResponse({
        'success': True,
        'total': len(rows),
        'data': [
            {
                'student': str(row['student'].pk),
                'mis_number': row['student'].mis_number,
                'full_name': row['student'].full_name,
                'email': row['email'],
                'current_track': row['current_track'],
                'project': str(row['project'].pk) if row['project'] else None,
                'application': serialize_application(row['application']) if row['application'] else None,
            }
            for row in rows
        ],
    })


@login_required
@staff_required
@require_http_methods(["GET"])
def export_internship1_roster_excel(request):
    """Export the Internship 1 roster to Excel"""
    rows = get_internship1_roster(request.GET.get('academic_year'))
    wb = build_internship1_roster_workbook(rows)

    response = HttpResponse(
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = (
        f'attachment; filename="internship1_roster_{get_current_time().strftime("%Y%m%d")}.xlsx"'
    )

    wb.save(response)
    return response
