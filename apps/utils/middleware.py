# utils/middleware.py

import logging
from utils.context import set_context_from_request, clear_request_context

logger = logging.getLogger(__name__)


class AuditContextMiddleware:
    """
    Attribute every write made while handling a request to its user.

    Must run after AuthenticationMiddleware so request.user is resolved.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        set_context_from_request(request)
        try:
            return self.get_response(request)
        finally:
            clear_request_context()
