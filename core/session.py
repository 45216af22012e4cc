"""
Sessão explícita do portal.

Substitui o "usuário atual" guardado no navegador: a sessão é montada a partir
da sessão Django a cada requisição e entregue à camada de apresentação.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import login, logout
from django.utils import timezone

from .menu import MenuSection, visible_sections

LOGIN_AT_KEY = 'portal_login_at'


@dataclass
class PortalSession:
    user: object
    login_at: Optional[datetime] = None
    menu: List[MenuSection] = field(default_factory=list)

    @property
    def is_authenticated(self):
        return bool(self.user and self.user.is_authenticated)

    @property
    def is_admin(self):
        return self.is_authenticated and self.user.is_portal_admin

    @property
    def display_name(self):
        if not self.is_authenticated:
            return ''
        return self.user.get_full_name()

    @property
    def expires_at(self):
        if self.login_at is None:
            return None
        return self.login_at + timedelta(seconds=settings.SESSION_COOKIE_AGE)

    def is_expired(self, now=None):
        expires_at = self.expires_at
        if expires_at is None:
            return False
        return (now or timezone.now()) >= expires_at


def _read_login_at(request):
    raw = request.session.get(LOGIN_AT_KEY)
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except (TypeError, ValueError):
        return None


def build_session(request) -> PortalSession:
    user = getattr(request, 'user', None)
    if not user or not user.is_authenticated:
        return PortalSession(user=user)
    return PortalSession(
        user=user,
        login_at=_read_login_at(request),
        menu=visible_sections(user),
    )


def start_session(request, user):
    """Autentica o usuário na sessão Django e registra o horário do login"""
    login(request, user)
    request.session[LOGIN_AT_KEY] = timezone.now().isoformat()
    request.portal_session = build_session(request)
    return request.portal_session


def end_session(request):
    """Invalida a sessão por completo (logout explícito)"""
    logout(request)
    request.portal_session = PortalSession(user=getattr(request, 'user', None))
