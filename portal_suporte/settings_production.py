"""
Configurações de produção do Portal de Suporte
"""
import os

os.environ.setdefault("DEBUG", "False")

from .settings import *  # noqa: E402,F401,F403
from .settings import BASE_DIR, LOGGING, LOGS_DIR  # noqa: E402
from .monitoring import attach_file_handlers, init_sentry  # noqa: E402

if DEBUG:  # noqa: F405
    raise ValueError("DEBUG não pode estar ativo em produção! Configure DEBUG=False.")

# Configurações de sessão seguras
SESSION_COOKIE_SECURE = True
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_NAME = 'portal_sessionid'

CSRF_COOKIE_SECURE = True
CSRF_COOKIE_NAME = 'portal_csrftoken'

# Redirecionamento e cabeçalhos quando atrás de proxy/HTTPS
SECURE_SSL_REDIRECT = os.getenv("SECURE_SSL_REDIRECT", "True").lower() in ("1", "true", "on", "yes")
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
USE_X_FORWARDED_HOST = True

SECURE_HSTS_SECONDS = 31536000  # 1 ano
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_CONTENT_TYPE_NOSNIFF = True

# Em produção o diretório de logs sempre existe
LOGS_DIR.mkdir(parents=True, exist_ok=True)
attach_file_handlers(LOGGING, LOGS_DIR)

MEDIA_ROOT = os.getenv("MEDIA_ROOT", BASE_DIR / "media")

# Monitoramento de erros: ativo somente com SENTRY_DSN configurado
SENTRY_DSN = os.getenv('SENTRY_DSN')
init_sentry(
    SENTRY_DSN,
    environment=os.getenv('SENTRY_ENVIRONMENT', 'production'),
    traces_sample_rate=float(os.getenv('SENTRY_TRACES_SAMPLE_RATE', '0.1')),
)
