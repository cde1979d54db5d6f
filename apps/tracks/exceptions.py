# tracks/exceptions.py

from django.core.exceptions import ObjectDoesNotExist, ValidationError


class NotFound(ObjectDoesNotExist):
    """Student, project, application or group does not exist"""
    status_code = 404

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidState(ValidationError):
    """Request is well formed but not allowed in the current state"""
    status_code = 400
    default_code = 'invalid_state'

    def __init__(self, message, code=None):
        super().__init__(message, code=code or self.default_code)


class NoChoiceSubmitted(InvalidState):
    default_code = 'no_choice_submitted'


class InvalidStatus(InvalidState):
    default_code = 'invalid_status'


class InvalidTargetTrack(InvalidState):
    default_code = 'invalid_target_track'


class ProjectAlreadyCompleted(InvalidState):
    default_code = 'project_already_completed'


class TransactionFailure(Exception):
    """The store failed to commit; nothing was written and the call may be retried"""
    status_code = 500
    retryable = True


class CascadeSideEffectFailure(Exception):
    """A best-effort step after an application review failed"""

    def __init__(self, step, original):
        super().__init__(f"{step} failed: {original}")
        self.step = step
        self.original = original
