# tests/test_application_review.py

import uuid
from unittest import mock

import pytest
from django.db import DatabaseError

from internships.models import InternshipApplication
from students.models import TrackSelection
from tracks.exceptions import CascadeSideEffectFailure, InvalidStatus, NotFound, TransactionFailure
from tracks.services import ApplicationReviewService
from utils.models import AuditLog

pytestmark = pytest.mark.django_db


def test_rejects_unknown_status(make_student, make_application):
    application = make_application(make_student())

    with pytest.raises(InvalidStatus):
        ApplicationReviewService.review_application(application.pk, 'approved')


def test_unknown_application_raises_not_found():
    with pytest.raises(NotFound):
        ApplicationReviewService.review_application(uuid.uuid4(), 'verified_pass')


def test_non_terminal_review_does_not_stamp_verification(make_student, make_selection, make_application, admin_user):
    student = make_student()
    make_selection(student, chosen_track='internship', internship_outcome='verified_fail')
    application = make_application(student, type='6month')

    outcome = ApplicationReviewService.review_application(
        application.pk, 'pending_verification', remarks='Checking with HR', reviewed_by=admin_user
    )

    application.refresh_from_db()
    assert application.status == 'pending_verification'
    assert application.admin_remarks == 'Checking with HR'
    assert application.reviewed_by == admin_user
    assert application.reviewed_at is not None
    assert application.verified_at is None
    assert outcome.project_retirement.skipped

    selection = TrackSelection.objects.get(student=student, semester=7)
    assert selection.internship_outcome == 'provisional'


def test_terminal_review_stamps_verification(make_student, make_application, admin_user):
    application = make_application(make_student(), type='6month', verification_remarks='')

    ApplicationReviewService.review_application(
        application.pk, 'verified_fail', remarks='Offer letter forged', reviewed_by=admin_user
    )

    application.refresh_from_db()
    assert application.verified_by == admin_user
    assert application.verified_at is not None
    assert application.verification_remarks == 'Offer letter forged'

    entry = AuditLog.objects.get(action='APPLICATION_REVIEW', object_id=str(application.pk))
    assert entry.changes['status'] == {'old': 'submitted', 'new': 'verified_fail'}


def test_summer_approval_retires_internship1_project(
        make_student, make_selection, make_application, allocated_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    project = allocated_project(student=student, project_type='internship1', status='active')
    application = make_application(student, status='pending_verification')

    outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert outcome.project_retirement.ok
    assert not outcome.project_retirement.skipped
    project.refresh_from_db()
    assert project.status == 'cancelled'
    assert project.faculty is None
    assert project.allocation_history.count() == 1

    selection = TrackSelection.objects.get(student=student, semester=7)
    assert selection.internship_outcome == 'verified_pass'
    student.refresh_from_db()
    assert student.require_sem8_coursework is False
    assert student.backlog_major1 is False


def test_repeated_approval_does_not_retire_again(make_student, make_selection, make_application, make_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    application = make_application(student, status='verified_pass')
    project = make_project(student=student, project_type='internship1')

    outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert outcome.project_retirement.skipped
    project.refresh_from_db()
    assert project.status == 'registered'


def test_six_month_approval_does_not_touch_internship1(make_student, make_selection, make_application, make_project):
    student = make_student()
    make_selection(student, chosen_track='internship')
    application = make_application(student, type='6month')
    project = make_project(student=student, project_type='internship1')

    outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert outcome.project_retirement.skipped
    project.refresh_from_db()
    assert project.status == 'registered'


def test_completed_internship1_project_survives_approval(
        make_student, make_selection, make_application, make_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    project = make_project(student=student, project_type='internship1', status='completed')
    application = make_application(student, status='submitted')

    outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert outcome.project_retirement.skipped
    project.refresh_from_db()
    assert project.status == 'completed'


@pytest.mark.parametrize('status,backlog', [
    ('verified_fail', True),
    ('absent', True),
    ('verified_pass', False),
])
def test_internship_track_outcome_drives_backlog(
        make_student, make_selection, make_application, status, backlog):
    student = make_student()
    make_selection(student, chosen_track='internship')
    application = make_application(student, type='6month')

    outcome = ApplicationReviewService.review_application(application.pk, status)

    assert outcome.outcome_sync.ok
    selection = TrackSelection.objects.get(student=student, semester=7)
    assert selection.internship_outcome == status
    student.refresh_from_db()
    assert student.require_sem8_coursework is True
    assert student.backlog_major1 is backlog


def test_missing_selection_skips_outcome_sync(make_student, make_application):
    application = make_application(make_student(), type='6month')

    outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert outcome.outcome_sync.skipped


def test_retirement_failure_keeps_primary_change(make_student, make_selection, make_application, make_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    project = make_project(student=student, project_type='internship1')
    application = make_application(student, status='submitted')

    with mock.patch('tracks.services.reset_project_progress', side_effect=DatabaseError('lock timeout')):
        outcome = ApplicationReviewService.review_application(application.pk, 'verified_pass')

    assert not outcome.project_retirement.ok
    assert isinstance(outcome.project_retirement.error, CascadeSideEffectFailure)
    assert outcome.project_retirement.error.step == 'project_retirement'
    assert outcome.outcome_sync.ok

    application.refresh_from_db()
    project.refresh_from_db()
    assert application.status == 'verified_pass'
    assert project.status == 'registered'


def test_outcome_sync_failure_keeps_primary_change(make_student, make_selection, make_application):
    student = make_student()
    make_selection(student, chosen_track='internship')
    application = make_application(student, type='6month')

    with mock.patch.object(
        TrackSelection, 'save', autospec=True, side_effect=DatabaseError('disk full')
    ):
        outcome = ApplicationReviewService.review_application(application.pk, 'absent')

    assert not outcome.outcome_sync.ok
    assert outcome.outcome_sync.error.step == 'outcome_sync'
    application.refresh_from_db()
    assert application.status == 'absent'


def test_primary_failure_raises_transaction_failure(make_student, make_application):
    application = make_application(make_student())

    with mock.patch.object(
        InternshipApplication, 'save', autospec=True, side_effect=DatabaseError('read only')
    ):
        with pytest.raises(TransactionFailure):
            ApplicationReviewService.review_application(application.pk, 'verified_pass')

    application.refresh_from_db()
    assert application.status == 'submitted'
