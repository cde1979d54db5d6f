# tracks/stats.py

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment
import logging

from core.utils import get_current_academic_year
from internships.models import InternshipApplication
from projects.models import Project
from students.models import Student
from .services import classify_internship1_track

logger = logging.getLogger(__name__)


INTERNSHIP1_TRACK_LABELS = {
    'project': 'Internship 1 Project',
    'project_pending': 'Internship 1 Project (Not Registered)',
    'application': 'Summer Internship (Approved)',
    'application_pending': 'Summer Internship (Pending)',
    'none': 'Not Assigned',
}


def get_internship1_roster(academic_year=None):
    """
    Internship 1 roster for Sem 7 students finalized to coursework.

    Loads projects and applications in bulk rather than per student. Rows are
    sorted by email, falling back to MIS number.

    Returns:
        list of dicts with student, current_track, project and application
    """
    academic_year = academic_year or get_current_academic_year()

    students = list(
        Student.objects.filter(
            semester=7,
            track_selections__semester=7,
            track_selections__academic_year=academic_year,
            track_selections__finalized_track='coursework',
        ).select_related('user').distinct()
    )
    student_ids = [student.pk for student in students]

    # Newest first, so the first row seen per student wins
    projects = {}
    for project in (Project.objects.filter(student_id__in=student_ids, semester=7, project_type='internship1')
                    .live().select_related('faculty').order_by('-created_at')):
        projects.setdefault(project.student_id, project)

    applications = {}
    for application in (InternshipApplication.objects.filter(student_id__in=student_ids, semester=7)
                        .summer().newest_first()):
        applications.setdefault(application.student_id, application)

    rows = []
    for student in students:
        project = projects.get(student.pk)
        application = applications.get(student.pk)
        email = student.college_email or (student.user.email if student.user else '')
        rows.append({
            'student': student,
            'email': email,
            'current_track': classify_internship1_track(project, application),
            'project': project,
            'application': application,
        })

    rows.sort(key=lambda row: ((row['email'] or '').lower() or '~', row['student'].mis_number))
    logger.debug(f"Built Internship 1 roster for {academic_year}: {len(rows)} students")
    return rows


def build_internship1_roster_workbook(rows):
    """Render roster rows into an openpyxl workbook"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Internship 1"

    headers = [
        'MIS Number', 'Full Name', 'Email', 'Contact', 'Branch', 'Current Track',
        'Project Title', 'Project Status', 'Faculty',
        'Application Status', 'Company', 'Admin Remarks', 'Track Changed At',
    ]
    ws.append(headers)

    for cell in ws[1]:
        cell.font = Font(bold=True, color='FFFFFF')
        cell.fill = PatternFill(start_color='4472C4', end_color='4472C4', fill_type='solid')
        cell.alignment = Alignment(horizontal='center')

    for row in rows:
        student = row['student']
        project = row['project']
        application = row['application']
        changed_at = application.internship1_track_changed_by_admin_at if application else None
        ws.append([
            student.mis_number,
            student.full_name,
            row['email'],
            student.contact_number,
            student.branch,
            INTERNSHIP1_TRACK_LABELS[row['current_track']],
            project.title if project else '',
            project.get_status_display() if project else '',
            project.faculty.full_name if project and project.faculty else '',
            application.get_status_display() if application else '',
            application.company_name if application else '',
            application.admin_remarks if application else '',
            changed_at.strftime('%Y-%m-%d %H:%M') if changed_at else '',
        ])

    for column in ws.columns:
        width = max(len(str(cell.value or '')) for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

    return wb
