from django.urls import path
from .views import (
    home_redirect, login_view, logout_view,
    dashboard, dashboard_open,
    account_list, account_create, account_edit, account_delete,
    password_change,
)

urlpatterns = [
    path("", home_redirect, name="home"),
    path("login/", login_view, name="login"),
    path("logout/", logout_view, name="logout"),

    # Dashboard e navegação pelo menu
    path("dashboard/", dashboard, name="dashboard"),
    path("dashboard/<slug:section_key>/<int:index>/", dashboard_open, name="dashboard_open"),

    # Gestão de contas
    path("accounts/", account_list, name="account_list"),
    path("accounts/create/", account_create, name="account_create"),
    path("accounts/<int:user_id>/edit/", account_edit, name="account_edit"),
    path("accounts/<int:user_id>/delete/", account_delete, name="account_delete"),
    path("accounts/password/", password_change, name="password_change"),
]
