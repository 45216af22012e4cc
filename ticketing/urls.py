from django.urls import path
from . import views

urlpatterns = [
    path("", views.ticket_list, name="ticket_list"),
    path("create/", views.ticket_create, name="ticket_create"),
    path("export/", views.ticket_export, name="ticket_export"),
    path("settings/", views.ticketing_settings, name="settings"),
    path("<int:ticket_id>/", views.ticket_detail, name="ticket_detail"),
    path("<int:ticket_id>/comments/", views.ticket_comment, name="ticket_comment"),
    path("<int:ticket_id>/activities/", views.ticket_activity, name="ticket_activity"),
    path("<int:ticket_id>/overdue/", views.ticket_overdue, name="ticket_overdue"),
    path("<int:ticket_id>/report/", views.ticket_report, name="ticket_report"),
]
