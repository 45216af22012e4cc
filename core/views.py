from django.contrib.auth.decorators import login_required
from django.shortcuts import render, redirect, get_object_or_404
from django.contrib import messages
from django.contrib.auth import authenticate, update_session_auth_hash
from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.views.decorators.http import require_POST
from django.views.decorators.csrf import ensure_csrf_cookie
from django.db import transaction
from django.db.models import ProtectedError, Q
from django.core.paginator import Paginator
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
import logging

from .forms import PortalUserForm, PortalUserChangeForm, PortalPasswordChangeForm
from .menu import EmbeddedFrame, ExternalLink, InternalRoute, all_menu_keys, find_entry
from .models import CustomUser
from .permissions import admin_required
from .audit_logger import (
    get_client_ip, log_login, log_logout, log_failed_login,
    log_user_creation, log_user_edit, log_user_action
)
from .rate_limiting import login_rate_limit
from .session import start_session, end_session

logger = logging.getLogger(__name__)


def home_redirect(request):
    if request.user.is_authenticated:
        return redirect('dashboard')
    return redirect('login')


def _safe_next(request):
    next_url = request.POST.get('next') or request.GET.get('next')
    if next_url and url_has_allowed_host_and_scheme(
        next_url, allowed_hosts={request.get_host()}, require_https=request.is_secure()
    ):
        return next_url
    return None


@ensure_csrf_cookie
@login_rate_limit
def login_view(request):
    if request.user.is_authenticated:
        return redirect('dashboard')

    if request.method == 'POST':
        username = (request.POST.get('username', '') or '').strip()
        password = request.POST.get('password', '') or ''
        user = authenticate(request, username=username, password=password) if username and password else None
        if user is not None:
            start_session(request, user)
            log_login(user, get_client_ip(request))
            logger.info(f"Login bem-sucedido: {user.username} (role: {user.role})")
            return redirect(_safe_next(request) or 'dashboard')

        logger.warning(f"Tentativa de login com credenciais inválidas: username={username}")
        log_failed_login(username, get_client_ip(request))
        messages.error(request, 'Credenciais inválidas.')

    return render(request, 'login.html', {'next': request.GET.get('next', '')})


def logout_view(request):
    if request.user.is_authenticated:
        log_logout(request.user, get_client_ip(request))
    end_session(request)
    messages.info(request, 'Você saiu do portal.')
    return redirect('login')


@login_required
def dashboard(request):
    """Dashboard com as seções liberadas para o usuário"""
    return render(request, 'core/dashboard.html', {
        'sections': request.portal_session.menu,
    })


def _open_external(request, section, entry):
    return redirect(entry.url)


def _open_embedded(request, section, entry):
    return render(request, 'core/frame.html', {
        'section': section,
        'entry': entry,
    })


def _open_internal(request, section, entry):
    return redirect(reverse(entry.route))


MENU_DISPATCH = {
    ExternalLink: _open_external,
    EmbeddedFrame: _open_embedded,
    InternalRoute: _open_internal,
}


@login_required
def dashboard_open(request, section_key, index):
    """Abre uma entrada do menu conforme o seu tipo"""
    section, entry = find_entry(request.user, section_key, index)
    if section is None:
        if section_key in all_menu_keys():
            logger.warning(f"{request.user.username} tentou abrir '{section_key}' sem permissão")
            raise PermissionDenied("Você não tem acesso a este módulo.")
        raise Http404("Seção não encontrada")
    if entry is None:
        raise Http404("Item de menu não encontrado")

    return MENU_DISPATCH[type(entry)](request, section, entry)


@login_required
@admin_required
def account_list(request):
    q = request.GET.get('q', '').strip()
    users = CustomUser.objects.only(
        'id', 'username', 'first_name', 'last_name', 'role', 'team_type',
        'allowed_menus', 'is_active', 'is_superuser', 'created_at'
    ).order_by('-created_at')
    if q:
        users = users.filter(
            Q(username__icontains=q) | Q(first_name__icontains=q) | Q(last_name__icontains=q)
        )
    paginator = Paginator(users, 25)
    page = paginator.get_page(request.GET.get('page'))
    return render(request, 'core/accounts/list.html', {'users': page, 'q': q})


@login_required
@admin_required
def account_create(request):
    if request.method == 'POST':
        form = PortalUserForm(request.POST)
        if form.is_valid():
            with transaction.atomic():
                user = form.save()
            log_user_creation(request.user, user)
            messages.success(request, f'Usuário {user.username} criado com sucesso!')
            return redirect('account_list')
    else:
        form = PortalUserForm(initial={'role': CustomUser.ROLE_TEAM})
    return render(request, 'core/accounts/form.html', {'form': form, 'creating': True})


@login_required
@admin_required
def account_edit(request, user_id):
    edited = get_object_or_404(CustomUser, id=user_id)
    if request.method == 'POST':
        form = PortalUserChangeForm(request.POST, instance=edited)
        if form.is_valid():
            with transaction.atomic():
                form.save()
            log_user_edit(request.user, edited, form.changed_summary())
            messages.success(request, f'Usuário {edited.username} atualizado com sucesso!')
            return redirect('account_list')
    else:
        form = PortalUserChangeForm(instance=edited)
    return render(request, 'core/accounts/form.html', {
        'form': form,
        'edited_user': edited,
        'creating': False,
    })


@login_required
@admin_required
@require_POST
def account_delete(request, user_id):
    user = get_object_or_404(CustomUser, id=user_id)

    # Não permitir deletar superusuários
    if user.is_superuser:
        messages.error(request, 'Não é possível deletar superusuários.')
        return redirect('account_list')

    # Não permitir deletar o próprio usuário
    if user == request.user:
        messages.error(request, 'Não é possível deletar seu próprio usuário.')
        return redirect('account_list')

    username = user.username
    try:
        user.delete()
    except ProtectedError:
        messages.error(request, 'Usuário possui tickets registrados; desative a conta em vez de deletar.')
        return redirect('account_list')
    log_user_action(request.user, 'user_deleted', {'username': username}, get_client_ip(request))
    messages.success(request, f'Usuário {username} deletado com sucesso!')
    return redirect('account_list')


@login_required
def password_change(request):
    """Troca da própria senha"""
    if request.method == 'POST':
        form = PortalPasswordChangeForm(request.user, request.POST)
        if form.is_valid():
            user = form.save()
            # Mantém a sessão ativa após a troca de senha
            update_session_auth_hash(request, user)
            log_user_action(user, 'password_changed', None, get_client_ip(request))
            messages.success(request, 'Senha alterada com sucesso!')
            return redirect('dashboard')
    else:
        form = PortalPasswordChangeForm(request.user)
    return render(request, 'core/accounts/password_change.html', {'form': form})
