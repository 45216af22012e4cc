"""
API REST do portal: sessão e tratamento padronizado de erros
"""
from django.contrib.auth import authenticate
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from django.utils.decorators import method_decorator
from rest_framework import exceptions, serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler
import logging

from .audit_logger import get_client_ip, log_login, log_logout, log_failed_login
from .exceptions import PortalError, InvalidCredentialsError
from .rate_limiting import login_rate_limit
from .session import build_session, start_session, end_session

logger = logging.getLogger(__name__)

DRF_CODES = {
    exceptions.NotAuthenticated: 'not_authenticated',
    exceptions.AuthenticationFailed: 'not_authenticated',
    exceptions.PermissionDenied: 'forbidden',
    exceptions.NotFound: 'not_found',
    exceptions.MethodNotAllowed: 'method_not_allowed',
    exceptions.ParseError: 'parse_error',
    exceptions.UnsupportedMediaType: 'unsupported_media_type',
    exceptions.Throttled: 'rate_limited',
}


def _validation_code(exc):
    """missing_field quando algum campo obrigatório veio vazio"""
    codes = exc.get_codes()
    flat = []

    def walk(value):
        if isinstance(value, dict):
            for item in value.values():
                walk(item)
        elif isinstance(value, (list, tuple)):
            for item in value:
                walk(item)
        else:
            flat.append(value)

    walk(codes)
    if any(code in ('required', 'blank', 'null') for code in flat):
        return 'missing_field'
    return 'invalid'


def portal_exception_handler(exc, context):
    """
    Renderiza erros como {"error": {"code", "message", "fields"?}}
    """
    if isinstance(exc, PortalError):
        logger.info(f"Erro do portal na API: {exc.code} - {exc.message}")
        return Response(exc.as_dict(), status=exc.status_code)

    # Erros do Django viram os equivalentes do DRF antes do mapeamento de códigos
    if isinstance(exc, Http404):
        exc = exceptions.NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        fields = sorted(exc.detail.keys()) if isinstance(exc.detail, dict) else []
        code = _validation_code(exc)
        error = {
            'code': code,
            'message': 'Preencha todos os campos obrigatórios.' if code == 'missing_field' else 'Dados inválidos.',
            'details': response.data,
        }
        if fields:
            error['fields'] = fields
    else:
        code = next(
            (value for klass, value in DRF_CODES.items() if isinstance(exc, klass)),
            getattr(exc, 'default_code', 'error'),
        )
        detail = getattr(exc, 'detail', None)
        error = {'code': code, 'message': str(detail) if detail else str(exc)}

    response.data = {'error': error}
    return response


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


def session_payload(portal_session):
    user = portal_session.user
    return {
        'id': user.id,
        'username': user.username,
        'full_name': portal_session.display_name,
        'role': user.role,
        'team_type': user.team_type,
        'is_admin': portal_session.is_admin,
        'login_at': portal_session.login_at,
        'expires_at': portal_session.expires_at,
        'menus': [section.key for section in portal_session.menu],
    }


class SessionView(APIView):
    """GET sessão atual, POST login, DELETE logout"""

    def get_permissions(self):
        if self.request.method == 'POST':
            return [AllowAny()]
        return super().get_permissions()

    def get(self, request):
        return Response(session_payload(build_session(request._request)))

    @method_decorator(login_rate_limit)
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        username = serializer.validated_data['username'].strip()
        user = authenticate(
            request._request,
            username=username,
            password=serializer.validated_data['password'],
        )
        if user is None:
            log_failed_login(username, get_client_ip(request))
            raise InvalidCredentialsError()

        portal_session = start_session(request._request, user)
        log_login(user, get_client_ip(request))
        return Response(session_payload(portal_session), status=status.HTTP_200_OK)

    def delete(self, request):
        log_logout(request.user, get_client_ip(request))
        end_session(request._request)
        return Response(status=status.HTTP_204_NO_CONTENT)
