# utils/context.py

"""
Thread-local request context for audit logging.

Holds the acting user and client details for the lifetime of a request so
BaseModel.save() and the track audit logger can attribute changes without
every service passing the request around.
"""

from threading import local
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address

logger = logging.getLogger(__name__)

_thread_locals = local()


def set_request_context(user=None, ip_address=None, user_agent=None, request_path=None):
    """
    Set the current request context for this thread.

    Called by AuditContextMiddleware at the start of each request.
    """
    _thread_locals.request_context = {
        'user': user if user is not None and user.is_authenticated else None,
        'ip_address': ip_address,
        'user_agent': user_agent or '',
        'request_path': request_path or '',
    }

    logger.debug(f"Set request context: user={user}, ip={ip_address}")


def get_client_ip(request):
    """
    Client address to stamp on audit records, or None.

    X-Forwarded-For is only honoured when AUDIT_TRUST_X_FORWARDED_FOR is on.
    Values that are not IPv4 or IPv6 addresses are dropped, since
    AuditLog.ip_address would refuse them.
    """
    candidate = None
    if getattr(settings, 'AUDIT_TRUST_X_FORWARDED_FOR', False):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        candidate = forwarded.split(',')[0].strip() or None
    candidate = candidate or request.META.get('REMOTE_ADDR')

    if not candidate:
        return None
    try:
        validate_ipv46_address(candidate)
    except ValidationError:
        logger.warning(f"Ignoring malformed client address {candidate!r} on {request.path}")
        return None
    return candidate


def set_context_from_request(request):
    """Populate the context from an incoming request"""
    set_request_context(
        user=getattr(request, 'user', None),
        ip_address=get_client_ip(request),
        user_agent=request.META.get('HTTP_USER_AGENT', ''),
        request_path=request.path,
    )


def get_request_context():
    """
    Get the current request context for this thread.

    Returns:
        dict or None when no context is set (shell, management commands)
    """
    return getattr(_thread_locals, 'request_context', None)


def clear_request_context():
    """Clear the request context for this thread."""
    if hasattr(_thread_locals, 'request_context'):
        delattr(_thread_locals, 'request_context')
        logger.debug("Cleared request context")


# ============================================================================
# CONTEXT MANAGER
# ============================================================================

class RequestContext:
    """
    Context manager for temporarily setting request context.

    Useful for management commands and tests that act on behalf of an admin.

    Example:
        with RequestContext(user=admin_user, ip_address='127.0.0.1'):
            TrackFinalizationService.finalize_track(student.id, 7, 'internship')
    """

    def __init__(self, user=None, ip_address=None, user_agent=None, request_path=None):
        self.context = {
            'user': user,
            'ip_address': ip_address,
            'user_agent': user_agent or '',
            'request_path': request_path or '',
        }
        self.previous_context = None

    def __enter__(self):
        self.previous_context = get_request_context()
        _thread_locals.request_context = self.context
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context:
            _thread_locals.request_context = self.previous_context
        else:
            clear_request_context()
