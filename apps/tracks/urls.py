# tracks/urls.py

"""
URL configuration for track transitions.

Admin endpoints finalize tracks, move students between Internship 1
sub-tracks, review applications and export the roster. Students submit
their own track choice.
"""

from django.urls import path
from . import views

app_name = 'tracks'

urlpatterns = [
    # =============================================================================
    # ADMIN
    # =============================================================================
    path('students/<uuid:student_id>/sem/<int:semester>/finalize/', views.finalize_track, name='finalize_track'),
    path('students/<uuid:student_id>/internship1-track/', views.change_internship1_track, name='change_internship1_track'),
    path('applications/<uuid:application_id>/review/', views.review_application, name='review_application'),
    path('internship1/roster/', views.internship1_roster, name='internship1_roster'),
    path('internship1/roster/export/', views.export_internship1_roster_excel, name='export_internship1_roster'),

    # =============================================================================
    # STUDENT
    # =============================================================================
    path('me/sem/<int:semester>/choice/', views.submit_track_choice, name='submit_track_choice'),
]
