"""
Limite de requisições por janela deslizante.

Os instantes das últimas requisições de cada cliente (IP + usuário + ação)
ficam no cache do Django. Usado no login e no registro de atividades com foto.
"""
from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.http import HttpResponse, JsonResponse
from django.utils import timezone

from .audit_logger import get_client_ip, log_security_event


class RateLimiter:
    """Permite no máximo `requests` chamadas a cada `window` segundos"""

    def __init__(self, requests, window, key_prefix='rate_limit'):
        self.requests = requests
        self.window = window
        self.key_prefix = key_prefix

    def cache_key(self, request, action):
        user = request.user.id if request.user.is_authenticated else 'anon'
        return f"{self.key_prefix}:{action}:{get_client_ip(request)}:{user}"

    def hit(self, request, action=''):
        """
        Registra uma chamada.

        Retorna (permitido, restantes, segundos_para_liberar). Chamadas
        recusadas não entram na janela.
        """
        key = self.cache_key(request, action)
        now = timezone.now().timestamp()
        stamps = [t for t in cache.get(key, []) if t > now - self.window]

        if len(stamps) >= self.requests:
            retry_after = max(1, int(stamps[0] + self.window - now))
            return False, 0, retry_after

        stamps.append(now)
        cache.set(key, stamps, self.window)
        return True, self.requests - len(stamps), 0


login_limiter = RateLimiter(requests=20, window=15 * 60)
upload_limiter = RateLimiter(requests=120, window=60 * 60)


def _wants_json(request):
    return request.path.startswith('/api/') or 'application/json' in request.headers.get('Accept', '')


def _too_many(request, retry_after):
    message = 'Muitas requisições. Tente novamente mais tarde.'
    if _wants_json(request):
        response = JsonResponse({'error': {'code': 'rate_limited', 'message': message}}, status=429)
    else:
        response = HttpResponse(f"{message} Aguarde {retry_after} segundos.", status=429)
    response['Retry-After'] = str(retry_after)
    return response


def rate_limit(limiter, action=''):
    """Decorator de view que aplica `limiter` à ação informada"""
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if settings.DEBUG or not getattr(settings, 'RATE_LIMIT_ENABLED', True):
                return view_func(request, *args, **kwargs)

            allowed, remaining, retry_after = limiter.hit(request, action)
            if not allowed:
                log_security_event('rate_limited', {
                    'action': action,
                    'path': request.path,
                    'limit': limiter.requests,
                    'window': limiter.window,
                }, get_client_ip(request))
                return _too_many(request, retry_after)

            response = view_func(request, *args, **kwargs)
            response['X-RateLimit-Limit'] = str(limiter.requests)
            response['X-RateLimit-Remaining'] = str(remaining)
            return response
        return _wrapped
    return decorator


login_rate_limit = rate_limit(login_limiter, 'login')
upload_rate_limit = rate_limit(upload_limiter, 'upload')
