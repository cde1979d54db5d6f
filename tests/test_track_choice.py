# tests/test_track_choice.py

from datetime import timedelta

import pytest

from core.models import SystemConfig
from core.utils import get_current_time
from internships.services import ApplicationSubmissionService
from students.services import TrackChoiceService
from tracks.exceptions import InvalidState, InvalidTargetTrack
from tracks.services import TrackFinalizationService

pytestmark = pytest.mark.django_db


def _close_window(key):
    end = get_current_time() - timedelta(days=1)
    SystemConfig.set_config_value(key, {'start': None, 'end': end.isoformat()}, 'object')


# =============================================================================
# TRACK CHOICE
# =============================================================================

def test_sem7_coursework_choice_is_auto_finalized(make_student):
    student = make_student()

    selection = TrackChoiceService.submit_choice(student, 7, 'coursework')

    assert selection.chosen_track == 'coursework'
    assert selection.finalized_track == 'coursework'
    assert selection.internship_outcome == 'provisional'
    assert selection.academic_year == '2025-26'
    assert selection.choice_submitted_at is not None
    student.refresh_from_db()
    assert student.require_sem8_coursework is False


def test_sem7_internship_choice_requires_sem8_coursework(make_student):
    student = make_student()

    TrackChoiceService.submit_choice(student, 7, 'internship')

    student.refresh_from_db()
    assert student.require_sem8_coursework is True
    assert student.backlog_major1 is False


def test_admin_change_survives_a_new_student_choice(make_student):
    student = make_student()
    TrackChoiceService.submit_choice(student, 7, 'coursework')
    TrackFinalizationService.finalize_track(student.pk, 7, 'internship')

    selection = TrackChoiceService.submit_choice(student, 7, 'coursework')

    assert selection.chosen_track == 'coursework'
    assert selection.finalized_track == 'internship'


def test_closed_choice_window_blocks_submission(make_student):
    _close_window('sem7.choiceWindow')

    with pytest.raises(InvalidState) as excinfo:
        TrackChoiceService.submit_choice(make_student(), 7, 'coursework')

    assert excinfo.value.code == 'window_closed'


def test_invalid_choice_is_rejected(make_student):
    with pytest.raises(InvalidTargetTrack):
        TrackChoiceService.submit_choice(make_student(), 7, 'major2')


def test_sem8_choice_only_for_type2(make_student, make_selection):
    type1 = make_student(semester=8)
    make_selection(type1, semester=7, chosen_track='internship', internship_outcome='verified_pass')
    type2 = make_student(semester=8)
    make_selection(type2, semester=7, chosen_track='coursework')

    with pytest.raises(InvalidState):
        TrackChoiceService.submit_choice(type1, 8, 'internship')

    selection = TrackChoiceService.submit_choice(type2, 8, 'major2')
    assert selection.chosen_track == 'coursework'
    assert selection.finalized_track == 'coursework'


def test_type1_students_are_initialized_to_coursework(make_student, make_selection):
    student = make_student(semester=8)
    make_selection(student, semester=7, chosen_track='internship', internship_outcome='verified_pass')

    selection = TrackChoiceService.initialize_sem8_for_type1(student)
    again = TrackChoiceService.initialize_sem8_for_type1(student)

    assert selection.finalized_track == 'coursework'
    assert selection.verification_status == 'approved'
    assert again.pk == selection.pk


def test_type2_students_are_not_initialized(make_student, make_selection):
    student = make_student(semester=8)
    make_selection(student, semester=7, chosen_track='coursework')

    with pytest.raises(InvalidState):
        TrackChoiceService.initialize_sem8_for_type1(student)


# =============================================================================
# APPLICATION SUBMISSION
# =============================================================================

def test_submit_six_month_application(make_student):
    student = make_student()

    application = ApplicationSubmissionService.submit(student, '6month', {
        'company_name': '  Initech  ',
        'offer_letter_link': 'https://drive.example.com/offer.pdf',
        'mode': 'remote',
    })

    assert application.status == 'submitted'
    assert application.company_name == 'Initech'
    assert application.submitted_at is not None
    assert application.assignment_marker == ''


@pytest.mark.parametrize('link', ['', 'ftp://files.example.com/offer.pdf', 'not a url'])
def test_six_month_application_needs_http_offer_letter(make_student, link):
    with pytest.raises(InvalidState):
        ApplicationSubmissionService.submit(make_student(), '6month', {'offer_letter_link': link})


def test_summer_application_needs_completion_certificate(make_student):
    with pytest.raises(InvalidState):
        ApplicationSubmissionService.submit(make_student(), 'summer', {
            'offer_letter_link': 'https://drive.example.com/offer.pdf',
        })


def test_closed_submission_window_blocks_application(make_student):
    _close_window('sem7.internship2.evidenceWindow')

    with pytest.raises(InvalidState) as excinfo:
        ApplicationSubmissionService.submit(make_student(), 'summer', {
            'completion_certificate_link': 'https://drive.example.com/certificate.pdf',
        })

    assert excinfo.value.code == 'window_closed'


def test_reviewed_application_cannot_be_edited(make_student, make_application):
    application = make_application(make_student(), status='verified_pass')

    with pytest.raises(InvalidState):
        ApplicationSubmissionService.update_details(application, {'company_name': 'Changed'})


def test_needs_info_application_goes_back_to_submitted(make_student, make_application):
    application = make_application(
        make_student(), type='6month', status='needs_info',
        offer_letter_link='https://drive.example.com/offer.pdf',
    )

    updated = ApplicationSubmissionService.update_details(application, {'mentor_name': 'R. Kulkarni'})

    assert updated.status == 'submitted'
    assert updated.mentor_name == 'R. Kulkarni'
