# utils/audit.py

import json
import logging

audit_logger = logging.getLogger("track_audit")
logger = logging.getLogger(__name__)


def _field_changes(old_values, new_values):
    """Merge before/after dicts into the per-field shape AuditLog stores"""
    old_values = old_values or {}
    new_values = new_values or {}
    changes = {}
    for field in sorted(set(old_values) | set(new_values)):
        changes[field] = json.loads(json.dumps(
            {'old': old_values.get(field), 'new': new_values.get(field)},
            default=str,
        ))
    return changes


def log_track_activity(
    action,
    target_object,
    student=None,
    old_values=None,
    new_values=None,
    notes=None,
    additional_data=None,
):
    """
    Log a track-transition activity for audit purposes.

    Writes one JSON line to the ``track_audit`` logger and an AuditLog row
    attributed to the user in the current request context.

    Args:
        action (str): AuditLog action (TRACK_CHANGE, PROJECT_CANCEL, APPLICATION_REVIEW).
        target_object (Model instance): Record the activity is about.
        student (Student instance, optional): Student the activity concerns.
        old_values (dict, optional): Values before the change.
        new_values (dict, optional): Values after the change.
        notes (str, optional): Free-text remarks, stored as the change reason.
        additional_data (dict, optional): Extra context-specific data.
    """
    from utils.context import get_request_context
    from utils.models import AuditLog

    context = get_request_context() or {}
    user = context.get('user')

    payload = {
        'action': action,
        'target': f"{target_object._meta.label_lower}:{target_object.pk}",
        'student': str(student.pk) if student is not None else None,
        'user': str(user.pk) if user is not None else None,
        'old': old_values or {},
        'new': new_values or {},
        'notes': notes or '',
    }
    if additional_data:
        payload['extra'] = additional_data

    audit_logger.info(json.dumps(payload, default=str, sort_keys=True))

    AuditLog.objects.create(
        content_type=target_object._meta.label_lower,
        object_id=str(target_object.pk),
        object_repr=str(target_object)[:200],
        action=action,
        changes=_field_changes(old_values, new_values),
        user_id=str(user.pk) if user is not None else None,
        user_name=(user.get_full_name() or str(user)) if user is not None and hasattr(user, 'get_full_name') else '',
        ip_address=context.get('ip_address'),
        change_reason=(notes or '')[:255],
        request_path=context.get('request_path', ''),
    )
