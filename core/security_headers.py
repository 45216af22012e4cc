from django.utils.deprecation import MiddlewareMixin
from django.conf import settings
from urllib.parse import urlsplit
import logging

from .menu import EmbeddedFrame, get_menu

logger = logging.getLogger('security')


def embedded_frame_origins():
    """Origens das páginas externas embutidas no dashboard (frame-src)"""
    origins = []
    for section in get_menu():
        for entry in section.items:
            if isinstance(entry, EmbeddedFrame):
                parts = urlsplit(entry.url)
                origin = f"{parts.scheme}://{parts.netloc}"
                if parts.netloc and origin not in origins:
                    origins.append(origin)
    return origins


class SecurityHeadersMiddleware(MiddlewareMixin):
    """
    Middleware para adicionar headers de segurança
    """

    def process_response(self, request, response):
        request_host = request.get_host()
        # Remover porta se presente para CSP (CSP não aceita portas)
        host_without_port = request_host.split(':')[0]
        protocol = 'https' if request.is_secure() else 'http'
        self_origin = f"{protocol}://{host_without_port}"
        frame_src = " ".join(embedded_frame_origins())

        # A câmera do registro de atividade usa blob: para o preview e data: para o snapshot
        csp = (
            f"default-src 'self' {self_origin}; "
            f"script-src 'self' 'unsafe-inline' {self_origin}; "
            f"style-src 'self' 'unsafe-inline' {self_origin}; "
            f"img-src 'self' data: blob: {self_origin} https:; "
            f"media-src 'self' blob: {self_origin}; "
            f"frame-src 'self' {frame_src}; "
            f"connect-src 'self' {self_origin}; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'; "
            "object-src 'none'"
        )
        response['Content-Security-Policy'] = csp

        response['X-Content-Type-Options'] = 'nosniff'
        response['X-Frame-Options'] = 'DENY'
        response['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        # Câmera liberada apenas para o próprio domínio (foto de verificação facial)
        response['Permissions-Policy'] = (
            "geolocation=(), "
            "microphone=(), "
            "camera=(self), "
            "payment=(), "
            "usb=(), "
            "fullscreen=(self)"
        )

        # Strict-Transport-Security (apenas em HTTPS)
        if request.is_secure():
            response['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains; preload'

        # Cache-Control para páginas sensíveis
        if request.path.startswith(('/admin/', '/accounts/', '/api/')):
            response['Cache-Control'] = 'no-cache, no-store, must-revalidate'
            response['Pragma'] = 'no-cache'
            response['Expires'] = '0'

        if settings.DEBUG and hasattr(request, 'user') and request.user.is_authenticated:
            logger.debug(f"Headers de segurança aplicados para {request.user.username} em {request.path}")

        return response
