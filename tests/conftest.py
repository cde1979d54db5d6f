# tests/conftest.py

from datetime import timedelta
from itertools import count

import pytest
from django.contrib.auth import get_user_model

from core.models import SystemConfig
from core.utils import get_current_time
from faculty.models import Faculty
from internships.models import InternshipApplication
from projects.models import (
    AllocationEvent,
    FacultyPreference,
    Group,
    GroupMember,
    Project,
    ProjectDeliverable,
)
from students.models import Student, TrackSelection
from utils.context import clear_request_context

ACADEMIC_YEAR = '2025-26'

_sequence = count(1)


@pytest.fixture(autouse=True)
def academic_year(db):
    SystemConfig.set_config_value('academic.currentYear', ACADEMIC_YEAR, 'string', category='academic')
    yield ACADEMIC_YEAR
    clear_request_context()


@pytest.fixture
def admin_user(db):
    return get_user_model().objects.create_user(
        username='admin', password='admin-pass', is_staff=True, first_name='Portal', last_name='Admin'
    )


@pytest.fixture
def faculty(db):
    return Faculty.objects.create(
        full_name='Dr. Meera Rao', faculty_code='FAC001', department='CSE', email='mrao@college.edu'
    )


@pytest.fixture
def other_faculty(db):
    return Faculty.objects.create(
        full_name='Dr. Arjun Iyer', faculty_code='FAC002', department='CSE', email='aiyer@college.edu'
    )


@pytest.fixture
def make_student(db):
    def _make(semester=7, **kwargs):
        n = next(_sequence)
        defaults = {
            'full_name': f'Student {n}',
            'mis_number': f'MIS{n:05d}',
            'college_email': f'student{n}@college.edu',
            'branch': 'CSE',
        }
        defaults.update(kwargs)
        return Student.objects.create(semester=semester, **defaults)
    return _make


@pytest.fixture
def make_selection(db):
    def _make(student, semester=7, chosen_track='coursework', finalized_track='__chosen__',
              academic_year=ACADEMIC_YEAR, **kwargs):
        if finalized_track == '__chosen__':
            finalized_track = chosen_track
        return TrackSelection.objects.create(
            student=student,
            semester=semester,
            academic_year=academic_year,
            chosen_track=chosen_track,
            finalized_track=finalized_track,
            **kwargs
        )
    return _make


@pytest.fixture
def make_project(db):
    def _make(student=None, group=None, project_type='major1', semester=7, status='registered',
              faculty=None, **kwargs):
        return Project.objects.create(
            title=kwargs.pop('title', f'{project_type} project'),
            description=kwargs.pop('description', 'Project description'),
            domain=kwargs.pop('domain', 'Machine Learning'),
            project_type=project_type,
            semester=semester,
            academic_year=kwargs.pop('academic_year', ACADEMIC_YEAR),
            student=student,
            group=group,
            status=status,
            faculty=faculty,
            **kwargs
        )
    return _make


@pytest.fixture
def allocated_project(make_project, faculty):
    """Project with live workflow state: faculty, deliverable, preference and allocation trail"""
    def _make(student=None, group=None, project_type='major1', semester=7, status='faculty_allocated'):
        now = get_current_time()
        project = make_project(
            student=student,
            group=group,
            project_type=project_type,
            semester=semester,
            status=status,
            faculty=faculty,
            allocated_by='admin_allocation',
            current_faculty_index=1,
            grade='A',
            feedback='Good progress',
            start_date=now - timedelta(days=30),
            end_date=now + timedelta(days=60),
            submission_deadline=now + timedelta(days=45),
        )
        ProjectDeliverable.objects.create(project=project, name='Mid-sem presentation', deadline=now)
        FacultyPreference.objects.create(project=project, faculty=faculty, priority=1)
        AllocationEvent.objects.create(
            project=project, faculty=faculty, priority=1, action='chosen', timestamp=now
        )
        return project
    return _make


@pytest.fixture
def make_group(db):
    def _make(members=(), semester=7, inactive=()):
        group = Group.objects.create(
            name=f'Group {next(_sequence)}', semester=semester, academic_year=ACADEMIC_YEAR
        )
        for index, student in enumerate(members):
            GroupMember.objects.create(
                group=group, student=student, role='leader' if index == 0 else 'member'
            )
        for student in inactive:
            GroupMember.objects.create(group=group, student=student, is_active=False)
        return group
    return _make


@pytest.fixture
def make_application(db):
    def _make(student, type='summer', status='submitted', age_days=None, **kwargs):
        if age_days is not None:
            created = get_current_time() - timedelta(days=age_days)
            kwargs.setdefault('created_at', created)
            kwargs.setdefault('updated_at', created)
        kwargs.setdefault('company_name', 'Acme Analytics')
        return InternshipApplication.objects.create(
            student=student,
            type=type,
            semester=7,
            academic_year=ACADEMIC_YEAR,
            status=status,
            **kwargs
        )
    return _make
