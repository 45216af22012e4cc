from django.contrib.auth.decorators import user_passes_test
from django.core.exceptions import PermissionDenied
from functools import wraps
import logging

logger = logging.getLogger(__name__)


def is_portal_admin(user):
    """Verifica se o usuário é administrador do portal ou superusuário"""
    if getattr(user, 'is_superuser', False):
        return True
    return user.is_authenticated and getattr(user, 'is_portal_admin', False)


def _admin_test(user):
    """Testa se o usuário é admin, com logs para debug"""
    if not user.is_authenticated:
        logger.warning("admin_required: Usuário não autenticado")
        return False

    is_admin = is_portal_admin(user)
    if not is_admin:
        logger.warning(
            f"admin_required: Acesso negado para {user.username} "
            f"(role: {getattr(user, 'role', 'N/A')}, is_superuser: {user.is_superuser})"
        )
    return is_admin


admin_required = user_passes_test(_admin_test, login_url='/login/')


def menu_access_required(menu_key):
    """
    Decorator que exige que a seção do dashboard esteja liberada para o usuário.
    Admins sempre têm acesso.
    """
    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            user = request.user
            if not user.is_authenticated:
                raise PermissionDenied("Você precisa estar autenticado para acessar esta página.")
            if not user.can_see_menu(menu_key):
                logger.warning(
                    f"menu_access_required: {user.username} tentou acessar '{menu_key}' sem permissão"
                )
                raise PermissionDenied("Você não tem acesso a este módulo.")
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator

