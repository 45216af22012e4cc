"""
Views para o sistema de tickets
"""
from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.core.paginator import Paginator
from django.http import Http404
from django.shortcuts import render, redirect, get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_POST
import logging

from core.exceptions import PortalError
from core.permissions import admin_required, menu_access_required
from core.rate_limiting import upload_rate_limit

from . import services
from .forms import (
    ActivityForm, CommentForm, DefaultOverdueForm, GuestMappingForm,
    OverdueConfigForm, TicketForm,
)
from .models import GuestMapping, OverdueSettings, TeamMember, Ticket
from .overdue import overdue_status
from .reports import ExportManager
from .stats import TicketStats

logger = logging.getLogger(__name__)

TICKETING_MENU_KEY = getattr(settings, 'TICKETING_MENU_KEY', 'ticket-troubleshooting')
ticketing_access = menu_access_required(TICKETING_MENU_KEY)


def _forbid_guests(user):
    if getattr(user, 'is_guest', False):
        raise PermissionDenied("Convidados têm acesso somente leitura.")


STATUS_LABELS = dict(Ticket.STATUS_CHOICES)


def _team_badge(ticket, now, team_type):
    """Badge de atraso e status do ponto de vista da equipe do usuário"""
    view = services.team_view(ticket, team_type)
    badge = overdue_status(view, now)
    badge.update({
        'status': view['status'],
        'status_label': STATUS_LABELS.get(view['status'], view['status']),
        'status_color': ticket.get_status_color(view['status']),
    })
    return badge


def _with_badges(tickets, now, team_type):
    return [(ticket, _team_badge(ticket, now, team_type)) for ticket in tickets]


def _overdue_requested(request):
    return request.GET.get('overdue') in ('1', 'true', 'on')


@login_required
@ticketing_access
def ticket_list(request):
    """Listar tickets com filtros de status, prioridade, busca e atraso"""
    now = timezone.now()
    status_filter = request.GET.get('status', '')
    priority_filter = request.GET.get('priority', '')
    q = request.GET.get('q', '').strip()
    overdue_only = _overdue_requested(request)
    team_type = services.team_type_for(request.user)

    base = services.visible_tickets(request.user)
    tickets = services.filter_tickets(
        base, status=status_filter, priority=priority_filter,
        search=q, overdue=overdue_only, now=now,
    )

    paginator = Paginator(tickets, 20)
    page = paginator.get_page(request.GET.get('page'))

    return render(request, 'ticketing/list.html', {
        'page': page,
        'tickets': _with_badges(page.object_list, now, team_type),
        'team_type': team_type,
        'status_filter': status_filter,
        'priority_filter': priority_filter,
        'q': q,
        'overdue_only': overdue_only,
        'status_choices': Ticket.STATUS_CHOICES,
        'priority_choices': Ticket.PRIORITY_CHOICES,
        'stats': TicketStats.summary(base, now),
        'notifications': services.notifications_for(request.user, now),
    })


@login_required
@ticketing_access
def ticket_create(request):
    """Criar novo ticket"""
    _forbid_guests(request.user)

    if request.method == 'POST':
        form = TicketForm(request.POST, request.FILES)
        if form.is_valid():
            try:
                ticket = services.create_ticket(
                    request.user, form.cleaned_data, photo=form.cleaned_data.get('photo')
                )
            except PortalError as e:
                logger.warning(f"Erro ao criar ticket: {e.code} - {e.message}")
                messages.error(request, e.message)
            else:
                messages.success(request, f'Ticket {ticket.ticket_number} criado com sucesso!')
                return redirect('ticketing:ticket_detail', ticket_id=ticket.id)
        else:
            logger.debug(f"Erros de validação no formulário: {form.errors}")
    else:
        form = TicketForm(initial={'overdue_hours': services.get_default_overdue_hours()})

    return render(request, 'ticketing/create.html', {'form': form})


def _get_visible_ticket(user, ticket_id):
    return get_object_or_404(services.visible_tickets(user), id=ticket_id)


@login_required
@ticketing_access
def ticket_detail(request, ticket_id):
    """Visualizar ticket com comentários, atividades e histórico de responsáveis"""
    ticket = _get_visible_ticket(request.user, ticket_id)
    now = timezone.now()
    team_type = services.team_type_for(request.user)

    return render(request, 'ticketing/detail.html', {
        'ticket': ticket,
        'badge': _team_badge(ticket, now, team_type),
        'team_type': team_type,
        'can_escalate': team_type == TeamMember.TEAM_PTS and not request.user.is_guest,
        'comments': ticket.comments.select_related('author'),
        'activities': ticket.activity_logs.select_related('recorded_by'),
        'handler_history': ticket.handler_history.all(),
        'comment_form': CommentForm(),
        'activity_form': ActivityForm(initial={
            'handler_name': services.handler_name_for(request.user),
            'new_status': ticket.status_for_team(team_type),
        }),
        'overdue_form': OverdueConfigForm(initial={
            'overdue_hours': ticket.overdue_hours,
            'overdue_enabled': ticket.overdue_enabled,
        }),
        'can_edit': not request.user.is_guest,
    })


@login_required
@ticketing_access
@require_POST
def ticket_comment(request, ticket_id):
    ticket = _get_visible_ticket(request.user, ticket_id)
    _forbid_guests(request.user)

    form = CommentForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'Escreva um comentário antes de enviar.')
    else:
        try:
            services.add_comment(ticket, request.user, form.cleaned_data['content'])
        except PortalError as e:
            messages.error(request, e.message)
        else:
            messages.success(request, 'Comentário adicionado!')
    return redirect('ticketing:ticket_detail', ticket_id=ticket.id)


@login_required
@ticketing_access
@require_POST
@upload_rate_limit
def ticket_activity(request, ticket_id):
    """Registrar atividade (status, responsável e foto de verificação facial)"""
    ticket = _get_visible_ticket(request.user, ticket_id)
    _forbid_guests(request.user)

    form = ActivityForm(request.POST, request.FILES)
    if not form.is_valid():
        for errors in form.errors.values():
            for error in errors:
                messages.error(request, error)
        return redirect('ticketing:ticket_detail', ticket_id=ticket.id)

    try:
        services.record_activity(
            ticket,
            request.user,
            form.cleaned_data,
            photo=form.cleaned_data.get('photo'),
            face_photo=form.cleaned_data.get('face_photo'),
            report_file=form.cleaned_data.get('report_file'),
        )
    except PortalError as e:
        logger.warning(f"Registro de atividade recusado no ticket {ticket.ticket_number}: {e.code}")
        messages.error(request, e.message)
    else:
        messages.success(request, 'Status atualizado com sucesso!')
    return redirect('ticketing:ticket_detail', ticket_id=ticket.id)


@login_required
@ticketing_access
@require_POST
def ticket_overdue(request, ticket_id):
    """Alterar limite de atraso do ticket (administradores)"""
    ticket = _get_visible_ticket(request.user, ticket_id)

    form = OverdueConfigForm(request.POST)
    if not form.is_valid():
        messages.error(request, 'O limite de atraso deve ser maior que 0.')
        return redirect('ticketing:ticket_detail', ticket_id=ticket.id)

    try:
        services.update_overdue_config(
            request.user, ticket,
            overdue_hours=form.cleaned_data['overdue_hours'],
            overdue_enabled=form.cleaned_data['overdue_enabled'],
        )
    except PortalError as e:
        messages.error(request, e.message)
    else:
        messages.success(request, 'Configuração de atraso atualizada!')
    return redirect('ticketing:ticket_detail', ticket_id=ticket.id)


@login_required
@ticketing_access
def ticket_report(request, ticket_id):
    """Relatório do ticket para impressão"""
    ticket = _get_visible_ticket(request.user, ticket_id)
    return render(request, 'ticketing/report.html', {
        'ticket': ticket,
        'badge': overdue_status(ticket),
        'activities': ticket.activity_logs.all(),
        'handler_history': ticket.handler_history.all(),
    })


@login_required
@ticketing_access
def ticket_export(request):
    """Exportar tickets visíveis (com os filtros atuais) em CSV"""
    queryset = services.visible_tickets(request.user)
    queryset = services.filter_tickets(
        queryset,
        status=request.GET.get('status', ''),
        priority=request.GET.get('priority', ''),
        search=request.GET.get('q', ''),
        overdue=_overdue_requested(request),
    )
    if isinstance(queryset, list):
        # Filtro de atraso devolve lista; o export agrega por QuerySet
        queryset = Ticket.objects.filter(pk__in=[ticket.pk for ticket in queryset])
    return ExportManager.export_tickets_csv(queryset)


@login_required
@admin_required
def ticketing_settings(request):
    """Limite padrão de atraso e mapeamento de convidados"""
    config = OverdueSettings.load()
    default_form = DefaultOverdueForm(initial={'default_overdue_hours': config.default_overdue_hours})
    mapping_form = GuestMappingForm()

    if request.method == 'POST':
        action = request.POST.get('action')
        try:
            if action == 'default_overdue':
                default_form = DefaultOverdueForm(request.POST)
                if default_form.is_valid():
                    services.update_default_overdue_hours(
                        request.user, default_form.cleaned_data['default_overdue_hours']
                    )
                    messages.success(request, 'Limite padrão de atraso atualizado!')
                    return redirect('ticketing:settings')
            elif action == 'add_mapping':
                mapping_form = GuestMappingForm(request.POST)
                if mapping_form.is_valid():
                    services.add_guest_mapping(
                        request.user,
                        mapping_form.cleaned_data['guest'],
                        mapping_form.cleaned_data['project_name'],
                    )
                    messages.success(request, 'Projeto liberado para o convidado!')
                    return redirect('ticketing:settings')
            elif action == 'remove_mapping':
                mapping_id = request.POST.get('mapping_id', '')
                if not mapping_id.isdigit():
                    raise Http404("Mapeamento não encontrado")
                mapping = get_object_or_404(GuestMapping, id=mapping_id)
                services.remove_guest_mapping(request.user, mapping)
                messages.success(request, 'Mapeamento removido!')
                return redirect('ticketing:settings')
        except PortalError as e:
            messages.error(request, e.message)

    return render(request, 'ticketing/settings.html', {
        'config': config,
        'default_form': default_form,
        'mapping_form': mapping_form,
        'mappings': GuestMapping.objects.select_related('guest'),
    })
