from django.contrib import messages
from django.shortcuts import redirect
from django.utils.deprecation import MiddlewareMixin
import logging

from .session import build_session, end_session

logger = logging.getLogger('security')


class PortalSessionMiddleware(MiddlewareMixin):
    """
    Anexa request.portal_session e encerra sessões com mais de
    SESSION_HOURS desde o login.
    """

    def process_request(self, request):
        portal_session = build_session(request)
        request.portal_session = portal_session

        if portal_session.is_authenticated and portal_session.is_expired():
            username = request.user.username
            end_session(request)
            logger.warning(f"Sessão expirada para {username}")
            if request.path.startswith('/api/'):
                return None
            messages.info(request, 'Sua sessão expirou. Faça login novamente.')
            return redirect('login')
        return None
