# tests/test_views.py

import json
import uuid
from io import BytesIO
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from openpyxl import load_workbook

from tracks.exceptions import TransactionFailure

pytestmark = pytest.mark.django_db


@pytest.fixture
def admin_client(client, admin_user):
    client.force_login(admin_user)
    return client


def _post(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type='application/json')


# =============================================================================
# FINALIZE
# =============================================================================

def test_finalize_changes_track(admin_client, make_student, make_selection, make_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    project = make_project(student=student)

    response = _post(
        admin_client,
        reverse('tracks:finalize_track', args=[student.pk, 7]),
        {'finalized_track': 'internship', 'remarks': 'Offer verified'},
    )

    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert body['message'] == 'Track changed successfully'
    assert body['data']['previous_track'] == 'coursework'
    project.refresh_from_db()
    assert project.status == 'cancelled'


def test_finalize_requires_staff(client, make_student, make_selection):
    student = make_student()
    make_selection(student)
    user = get_user_model().objects.create_user(username='student', password='pw')
    client.force_login(user)

    response = _post(client, reverse('tracks:finalize_track', args=[student.pk, 7]), {'finalized_track': 'internship'})

    assert response.status_code == 403


def test_finalize_maps_errors_to_status_codes(admin_client, make_student):
    student = make_student()
    url = reverse('tracks:finalize_track', args=[student.pk, 7])

    assert _post(admin_client, url, {'finalized_track': 'major2'}).status_code == 400

    missing = _post(admin_client, url, {'finalized_track': 'internship'})
    assert missing.status_code == 400
    assert missing.json()['code'] == 'no_choice_submitted'

    unknown = _post(
        admin_client, reverse('tracks:finalize_track', args=[uuid.uuid4(), 7]), {'finalized_track': 'internship'}
    )
    assert unknown.status_code == 404


def test_finalize_transaction_failure_is_500(admin_client, make_student, make_selection):
    student = make_student()
    make_selection(student)

    with mock.patch(
        'tracks.views.TrackFinalizationService.finalize_track',
        side_effect=TransactionFailure('Sem 7 track finalization failed; no changes were saved'),
    ):
        response = _post(
            admin_client, reverse('tracks:finalize_track', args=[student.pk, 7]), {'finalized_track': 'internship'}
        )

    assert response.status_code == 500
    assert response.json()['retryable'] is True


def test_malformed_body_is_400(admin_client, make_student):
    student = make_student()

    response = admin_client.post(
        reverse('tracks:finalize_track', args=[student.pk, 7]), data='{not json', content_type='application/json'
    )

    assert response.status_code == 400


# =============================================================================
# INTERNSHIP 1 & REVIEW
# =============================================================================

def test_change_internship1_track(admin_client, make_student, make_selection):
    student = make_student()
    make_selection(student, chosen_track='coursework')

    response = _post(
        admin_client, reverse('tracks:change_internship1_track', args=[student.pk]), {'target_track': 'project'}
    )

    assert response.status_code == 200
    body = response.json()
    assert body['message'] == 'Track assigned to Internship 1 Project successfully'
    assert body['data']['application']['assignment_marker'] == 'project_track'


def test_review_application(admin_client, make_student, make_selection, make_application, make_project):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    make_project(student=student, project_type='internship1')
    application = make_application(student)

    response = _post(
        admin_client,
        reverse('tracks:review_application', args=[application.pk]),
        {'status': 'verified_pass', 'admin_remarks': 'Certificate checked'},
    )

    assert response.status_code == 200
    body = response.json()
    assert body['data']['status'] == 'verified_pass'
    assert body['project_retirement']['ok'] is True
    assert body['project_retirement']['skipped'] is False
    assert body['outcome_sync']['ok'] is True


def test_numeric_remarks_are_accepted(admin_client, make_student, make_selection):
    student = make_student()
    make_selection(student, chosen_track='coursework')

    response = _post(
        admin_client,
        reverse('tracks:change_internship1_track', args=[student.pk]),
        {'target_track': 'application', 'remarks': 123},
    )

    assert response.status_code == 200
    assert response.json()['data']['application']['admin_remarks'] == '123'


def test_review_with_invalid_status_is_400(admin_client, make_student, make_application):
    application = make_application(make_student())

    response = _post(admin_client, reverse('tracks:review_application', args=[application.pk]), {'status': 'ok'})

    assert response.status_code == 400
    assert response.json()['code'] == 'invalid_status'


# =============================================================================
# STUDENT CHOICE
# =============================================================================

def test_student_submits_own_choice(client, make_student):
    user = get_user_model().objects.create_user(username='s1', password='pw')
    make_student(user=user)
    client.force_login(user)

    response = _post(client, reverse('tracks:submit_track_choice', args=[7]), {'chosen_track': 'internship'})

    assert response.status_code == 200
    assert response.json()['data']['finalized_track'] == 'internship'


def test_choice_without_student_profile_is_404(client):
    user = get_user_model().objects.create_user(username='nobody', password='pw')
    client.force_login(user)

    response = _post(client, reverse('tracks:submit_track_choice', args=[7]), {'chosen_track': 'internship'})

    assert response.status_code == 404


# =============================================================================
# ROSTER
# =============================================================================

def test_roster_lists_coursework_students_with_labels(
        admin_client, make_student, make_selection, make_project, make_application):
    on_project = make_student(college_email='a@college.edu')
    make_selection(on_project, chosen_track='coursework')
    make_project(student=on_project, project_type='internship1')

    pending = make_student(college_email='b@college.edu')
    make_selection(pending, chosen_track='coursework')
    make_application(pending, status='submitted')

    internship = make_student(college_email='c@college.edu')
    make_selection(internship, chosen_track='internship')

    response = admin_client.get(reverse('tracks:internship1_roster'))

    assert response.status_code == 200
    body = response.json()
    assert body['total'] == 2
    assert [row['current_track'] for row in body['data']] == ['project', 'application_pending']


def test_roster_export_is_a_workbook(admin_client, make_student, make_selection, make_application):
    student = make_student()
    make_selection(student, chosen_track='coursework')
    make_application(student, status='verified_fail', assignment_marker='project_track')

    response = admin_client.get(reverse('tracks:export_internship1_roster'))

    assert response.status_code == 200
    assert response['Content-Type'] == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    sheet = load_workbook(BytesIO(response.content)).active
    assert sheet['A1'].value == 'MIS Number'
    assert sheet['A2'].value == student.mis_number
    assert sheet['F2'].value == 'Internship 1 Project (Not Registered)'
