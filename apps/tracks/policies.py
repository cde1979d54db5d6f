# tracks/policies.py

"""
Track policy table.

Single source of truth for:
- which targets a semester accepts
- which workflow flags a finalized track sets on the student
- which projects a track change cancels, keyed by the track being left
"""

from collections import namedtuple


SEMESTER_TARGET_TRACKS = {
    7: ('internship', 'coursework'),
    8: ('internship', 'major2'),
}

# Sem 8 offers "major2" to students but stores it as the coursework track
STORED_TRACKS = {
    'internship': 'internship',
    'coursework': 'coursework',
    'major2': 'coursework',
}

COURSEWORK_TRACKS = ('coursework', 'major2')


# =============================================================================
# FLAG POLICY
# =============================================================================

# None means "leave the flag as it is"
TrackPolicy = namedtuple(
    'TrackPolicy',
    ['require_sem8_coursework', 'backlog_major1', 'backlog_from_outcome']
)

TRACK_POLICIES = {
    (7, 'internship'): TrackPolicy(
        require_sem8_coursework=True,
        backlog_major1=False,
        backlog_from_outcome=True,
    ),
    (7, 'coursework'): TrackPolicy(
        require_sem8_coursework=False,
        backlog_major1=False,
        backlog_from_outcome=False,
    ),
    (8, 'internship'): TrackPolicy(None, None, False),
    (8, 'major2'): TrackPolicy(None, None, False),
}

BACKLOG_OUTCOMES = ('verified_fail', 'absent')

REJECTED_APPLICATION_STATUSES = ('verified_fail', 'absent')


def get_track_policy(semester, track):
    """Policy for a (semester, track) pair; stored coursework at sem 8 reads as major2"""
    if semester == 8 and track == 'coursework':
        track = 'major2'
    return TRACK_POLICIES.get((semester, track), TrackPolicy(None, None, False))


def apply_track_flags(student, semester, track, outcome=None):
    """
    Set the student's workflow flags for a finalized track.

    ``outcome`` is the reviewed internship status; when the policy derives the
    backlog from it, a failed or absent outcome raises the backlog flag.

    Returns:
        list: names of the fields that were assigned
    """
    policy = get_track_policy(semester, track)
    touched = []

    if policy.require_sem8_coursework is not None:
        student.require_sem8_coursework = policy.require_sem8_coursework
        touched.append('require_sem8_coursework')

    if policy.backlog_major1 is not None:
        backlog = policy.backlog_major1
        if policy.backlog_from_outcome and outcome is not None:
            backlog = outcome in BACKLOG_OUTCOMES
        student.backlog_major1 = backlog
        touched.append('backlog_major1')

    return touched


# =============================================================================
# CASCADE POLICY
# =============================================================================

CascadePolicy = namedtuple('CascadePolicy', ['individual_types', 'group_types'])

# Keyed by (semester, track being left). Group projects are only legitimate on
# the coursework tracks, so only leaving those scans group memberships.
CASCADE_POLICIES = {
    (7, 'coursework'): CascadePolicy(('major1', 'internship1'), ('major1',)),
    (7, 'internship'): CascadePolicy(('major1', 'internship1'), ()),
    (8, 'major2'): CascadePolicy(('major2', 'internship2'), ('major2',)),
    (8, 'internship'): CascadePolicy(('major2', 'internship2'), ()),
}


def get_cascade_policy(semester, previous_track):
    return CASCADE_POLICIES.get((semester, previous_track), CascadePolicy((), ()))


# =============================================================================
# INTERNSHIP 1 SUB-TRACK
# =============================================================================

INTERNSHIP1_TARGET_TRACKS = ('project', 'application')

APPLICATION_PLACEHOLDER_COMPANY = 'To be provided by student'
PROJECT_MARKER_COMPANY = 'N/A - Assigned to Internship 1 Project'

REMARK_ASSIGNED = 'Assigned by admin'
REMARK_FROM_PROJECT_CANCELLED = 'Switched from Internship-I under Institute Faculty (Project cancelled)'
REMARK_FROM_PROJECT = 'Switched from Internship-I under Institute Faculty'
REMARK_TO_PROJECT_REJECTED = (
    'Switched to Internship-I under Institute Faculty (Summer internship application rejected)'
)
REMARK_TO_PROJECT = 'Switched to Internship-I under Institute Faculty'


def default_internship1_remarks(current_state, target_track, application=None):
    """
    Remark text for an Internship 1 track change when the admin gave none.

    Derived from the (current state, target) pair; moving to the project track
    mentions the rejection when a live or approved application is retired.
    """
    if current_state == 'none':
        return REMARK_ASSIGNED

    if target_track == 'application':
        if current_state == 'project':
            return REMARK_FROM_PROJECT_CANCELLED
        return REMARK_FROM_PROJECT

    if application is not None and application.status not in REJECTED_APPLICATION_STATUSES:
        return REMARK_TO_PROJECT_REJECTED
    return REMARK_TO_PROJECT
