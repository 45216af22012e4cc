"""
Views personalizadas para tratamento de erros
"""
from django.shortcuts import render
from django.http import HttpResponseServerError, HttpResponseNotFound, HttpResponseForbidden, HttpResponseBadRequest
from django.template import TemplateDoesNotExist
import logging

logger = logging.getLogger(__name__)

FALLBACK_PAGE = """
<html>
<head><title>{status} - {title}</title></head>
<body style="margin:0;padding:0;height:100vh;display:flex;align-items:center;justify-content:center;background:#f8f9fa;font-family:Arial,sans-serif;">
    <div style="text-align:center;max-width:500px;padding:2rem;">
        <h1 style="color:#dc3545;font-size:4rem;margin:0;">{status}</h1>
        <h2 style="color:#333;margin:1rem 0;">{title}</h2>
        <p style="color:#666;margin:1rem 0;">{message}</p>
        <a href="/" style="display:inline-block;padding:0.75rem 1.5rem;background:#007bff;color:white;text-decoration:none;border-radius:4px;">Voltar ao início</a>
    </div>
</body>
</html>
"""


def _render_error(request, status, title, message, fallback_class):
    context = {'status': status, 'title': title, 'error_message': message}
    try:
        return render(request, 'errors/error.html', context, status=status)
    except TemplateDoesNotExist as e:
        logger.error(f"Erro ao renderizar página {status}: {str(e)}")
        return fallback_class(FALLBACK_PAGE.format(status=status, title=title, message=message))


def custom_404(request, exception=None):
    """View personalizada para erro 404"""
    return _render_error(
        request, 404, 'Página não encontrada',
        'A página que você está procurando não existe.', HttpResponseNotFound
    )


def force_404(request):
    """Força 404 para qualquer URL não encontrada"""
    return custom_404(request)


def custom_500(request):
    """View personalizada para erro 500"""
    return _render_error(
        request, 500, 'Erro interno do servidor',
        'Ocorreu um erro inesperado. Tente novamente mais tarde.', HttpResponseServerError
    )


def custom_403(request, exception=None, reason=''):
    """
    View personalizada para erro 403
    Usada tanto como handler403 (exception) quanto como CSRF_FAILURE_VIEW (reason)
    """
    if reason:
        error_message = "Verificação CSRF falhou. Pedido cancelado."
        logger.error(f"ERRO CSRF: {reason} - Path: {request.path}, Host: {request.get_host()}")
    elif exception:
        error_message = str(exception) or "Você não tem permissão para acessar esta página."
        logger.error(f"ERRO 403: {exception} - Path: {request.path}")
    else:
        error_message = "Acesso negado."
        logger.error(f"ERRO 403: Acesso negado - Path: {request.path}, Method: {request.method}")

    return _render_error(request, 403, 'Acesso negado', error_message, HttpResponseForbidden)


def custom_400(request, exception=None):
    """View personalizada para erro 400"""
    return _render_error(
        request, 400, 'Requisição inválida',
        'A requisição não pôde ser processada.', HttpResponseBadRequest
    )
