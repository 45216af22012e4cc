"""
Operações de escrita e consulta do módulo de tickets.

As views HTML e a API passam por aqui; as regras (campos obrigatórios,
permissão de administrador, transação do registro de atividade) valem para
qualquer canal.
"""
import logging
import os

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from core.audit_logger import log_security_event, log_ticket_event, log_user_action
from core.exceptions import (
    FacePhotoRequiredError, InvalidAssigneeError, InvalidOverdueHoursError, InvalidPriorityError,
    InvalidStatusError, MissingFieldError, PortalPermissionError,
)
from core.permissions import is_portal_admin

from .models import (
    ActivityLog, GuestMapping, HandlerHistory, OverdueSettings, TeamMember,
    Ticket, TicketComment,
)
from .overdue import is_overdue
from .storage import KIND_PDF, BlobStore

logger = logging.getLogger(__name__)


def _text(data, name):
    return str(data.get(name) or '').strip()


def parse_overdue_hours(value):
    """Inteiro >= 1, senão InvalidOverdueHoursError"""
    if isinstance(value, bool):
        raise InvalidOverdueHoursError()
    try:
        hours = int(value)
    except (TypeError, ValueError):
        raise InvalidOverdueHoursError()
    if str(value).strip() != str(hours) and not isinstance(value, int):
        raise InvalidOverdueHoursError()
    if hours < 1:
        raise InvalidOverdueHoursError()
    return hours


def handler_name_for(user):
    """Nome do membro da equipe ligado ao usuário, ou o nome do usuário"""
    member = TeamMember.objects.filter(user=user).first()
    if member is not None:
        return member.name
    return user.get_full_name()


def team_type_for(user):
    """Equipe do membro ligado ao usuário; sem membro conta como Team PTS"""
    member = TeamMember.objects.filter(user=user).first() if user is not None else None
    return member.team_type if member is not None else TeamMember.TEAM_PTS


def team_view(ticket, team_type):
    """
    Campos usados pelo cálculo de atraso, com o status que a equipe acompanha.
    Para o Team Services o atraso some quando services_status é terminal.
    """
    return {
        'created_at': ticket.created_at,
        'status': ticket.status_for_team(team_type),
        'overdue_hours': ticket.overdue_hours,
        'overdue_enabled': ticket.overdue_enabled,
    }


# ---------------------------------------------------------------------------
# Visibilidade e filtros
# ---------------------------------------------------------------------------

def visible_tickets(user):
    """
    Admins e Team PTS veem tudo; o Team Services só os tickets encaminhados;
    convidados só os projetos mapeados.
    """
    qs = Ticket.objects.select_related('assigned_to', 'created_by')
    if getattr(user, 'is_guest', False):
        projects = GuestMapping.objects.filter(guest=user).values_list('project_name', flat=True)
        return qs.filter(project_name__in=list(projects))
    if not is_portal_admin(user) and team_type_for(user) == TeamMember.TEAM_SERVICES:
        return qs.filter(Q(current_team=TeamMember.TEAM_SERVICES) | ~Q(services_status=''))
    return qs


def filter_tickets(queryset, status='', priority='', search='', overdue=False, now=None):
    """
    Status igual E prioridade igual E busca (sem diferenciar maiúsculas) em
    título, descrição e número. Busca vazia casa com tudo.

    Com overdue=True o atraso é avaliado no momento da consulta e o retorno é
    uma lista; caso contrário é um QuerySet.
    """
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    search = (search or '').strip()
    if search:
        queryset = queryset.filter(
            Q(title__icontains=search)
            | Q(description__icontains=search)
            | Q(ticket_number__icontains=search)
        )
    if overdue:
        now = now or timezone.now()
        candidates = queryset.filter(overdue_enabled=True).exclude(status__in=Ticket.TERMINAL_STATUSES)
        return [ticket for ticket in candidates if is_overdue(ticket, now)]
    return queryset


# ---------------------------------------------------------------------------
# Criação
# ---------------------------------------------------------------------------

def get_default_overdue_hours():
    return OverdueSettings.load().default_overdue_hours


def create_ticket(user, data, photo=None, store=None):
    title = _text(data, 'title')
    description = _text(data, 'description')
    missing = [name for name, value in (('title', title), ('description', description)) if not value]
    if missing:
        raise MissingFieldError(missing)

    status = data.get('status') or Ticket.STATUS_OPEN
    if status not in Ticket.STATUS_VALUES:
        raise InvalidStatusError()
    priority = data.get('priority') or Ticket.PRIORITY_MEDIUM
    if priority not in Ticket.PRIORITY_VALUES:
        raise InvalidPriorityError()

    raw_hours = data.get('overdue_hours')
    if raw_hours in (None, ''):
        overdue_hours = get_default_overdue_hours()
    else:
        overdue_hours = parse_overdue_hours(raw_hours)
    overdue_enabled = data.get('overdue_enabled')
    if overdue_enabled is None:
        overdue_enabled = True

    store = store or BlobStore()
    stored_photo = None
    if photo is not None:
        stored_photo = store.upload(photo, 'tickets')

    try:
        with transaction.atomic():
            ticket = Ticket.objects.create(
                title=title,
                description=description,
                status=status,
                priority=priority,
                category=_text(data, 'category'),
                project_name=_text(data, 'project_name'),
                customer_contact=_text(data, 'customer_contact'),
                sales_name=_text(data, 'sales_name'),
                sn_unit=_text(data, 'sn_unit'),
                photo_url=stored_photo.url if stored_photo else '',
                assigned_to=data.get('assigned_to'),
                overdue_hours=overdue_hours,
                overdue_enabled=bool(overdue_enabled),
                created_by=user,
            )
            if ticket.assigned_to is not None:
                HandlerHistory.objects.create(
                    ticket=ticket,
                    handler_name=ticket.assigned_to.name,
                    started_at=ticket.created_at,
                )
    except Exception:
        if stored_photo is not None:
            store.delete(stored_photo)
        raise

    logger.info(f"Ticket {ticket.ticket_number} criado por {user.username}")
    log_ticket_event(user, ticket, 'ticket_created', overdue_hours=ticket.overdue_hours)
    return ticket


def add_comment(ticket, author, content):
    content = (content or '').strip()
    if not content:
        raise MissingFieldError(['content'])
    comment = TicketComment.objects.create(ticket=ticket, author=author, content=content)
    logger.debug(f"Comentário {comment.id} adicionado ao ticket {ticket.ticket_number}")
    log_ticket_event(author, ticket, 'comment_added', comment_id=comment.id)
    return comment


# ---------------------------------------------------------------------------
# Registro de atividade
# ---------------------------------------------------------------------------

def _apply_handler_change(ticket, handler_name, now):
    """
    Se o responsável mudou, fecha a entrada aberta e abre outra.
    Mesmo responsável: continuação do mesmo turno, nada é criado.
    """
    latest = ticket.handler_history.order_by('-started_at', '-id').first()
    if latest is not None and latest.handler_name == handler_name:
        return None
    ticket.handler_history.filter(ended_at__isnull=True).update(ended_at=now)
    return HandlerHistory.objects.create(ticket=ticket, handler_name=handler_name, started_at=now)


def _escalation_target(team_type, data):
    """Membro do Team Services que recebe o ticket, ou None sem encaminhamento"""
    if not data.get('assign_to_services'):
        return None
    if team_type != TeamMember.TEAM_PTS:
        raise InvalidAssigneeError('Somente o Team PTS encaminha tickets ao Team Services.')
    assignee = data.get('services_assignee')
    if assignee is None:
        raise MissingFieldError(['services_assignee'], 'Selecione o responsável do Team Services.')
    if not isinstance(assignee, TeamMember):
        assignee = TeamMember.objects.filter(pk=assignee).first()
    if assignee is None or assignee.team_type != TeamMember.TEAM_SERVICES:
        raise InvalidAssigneeError()
    return assignee


def _apply_status(ticket, team_type, new_status, assignee, now):
    """
    Team PTS altera status e pode encaminhar ao Team Services (que começa em
    aberto); Team Services altera apenas services_status.
    """
    if team_type == TeamMember.TEAM_SERVICES:
        ticket.services_status = new_status
        return
    ticket.status = new_status
    if assignee is not None:
        ticket.current_team = TeamMember.TEAM_SERVICES
        ticket.services_status = Ticket.STATUS_OPEN
        ticket.assigned_to = assignee
        ticket.escalated_at = now


def record_activity(ticket, actor, data, photo=None, face_photo=None, report_file=None, store=None, now=None):
    """
    Registra a atividade e aplica os efeitos no ticket numa única transação:
    grava o log, sobrescreve o status da equipe de quem registra e atualiza o
    histórico de responsáveis.

    Os arquivos são enviados antes da transação; se a transação falhar eles
    são removidos e o erro é propagado. Um client_token repetido para o mesmo
    ticket devolve o registro existente sem reaplicar nada.
    """
    handler_name = _text(data, 'handler_name') or (handler_name_for(actor) if actor else '')
    notes = _text(data, 'notes')
    new_status = _text(data, 'new_status')

    missing = [name for name, value in (('handler_name', handler_name), ('notes', notes), ('new_status', new_status)) if not value]
    if missing:
        raise MissingFieldError(missing)
    if new_status not in Ticket.STATUS_VALUES:
        raise InvalidStatusError()
    if face_photo is None:
        raise FacePhotoRequiredError()

    team_type = team_type_for(actor)
    assignee = _escalation_target(team_type, data)

    client_token = _text(data, 'client_token')[:64]
    if client_token:
        existing = ActivityLog.objects.filter(ticket=ticket, client_token=client_token).first()
        if existing is not None:
            logger.info(f"Registro repetido ignorado (token {client_token}) no ticket {ticket.ticket_number}")
            return existing

    store = store or BlobStore()
    uploaded = []
    try:
        face_blob = store.upload(face_photo, 'faces', ticket.pk)
        uploaded.append(face_blob)
        photo_blob = None
        if photo is not None:
            photo_blob = store.upload(photo, 'photos', ticket.pk)
            uploaded.append(photo_blob)
        report_blob = None
        if report_file is not None:
            report_blob = store.upload(report_file, 'reports', ticket.pk, kind=KIND_PDF)
            uploaded.append(report_blob)

        now = now or timezone.now()
        with transaction.atomic():
            locked = Ticket.objects.select_for_update().get(pk=ticket.pk)
            log = ActivityLog.objects.create(
                ticket=locked,
                handler_name=handler_name,
                team_type=team_type,
                action_taken=_text(data, 'action_taken'),
                notes=notes,
                new_status=new_status,
                assigned_to_services=assignee is not None,
                photo_url=photo_blob.url if photo_blob else '',
                face_photo_url=face_blob.url,
                file_url=report_blob.url if report_blob else '',
                file_name=os.path.basename(report_file.name or '')[:255] if report_blob else '',
                recorded_by=actor,
                client_token=client_token,
                created_at=now,
            )
            _apply_status(locked, team_type, new_status, assignee, now)
            sn_unit = _text(data, 'sn_unit')
            if sn_unit:
                locked.sn_unit = sn_unit
            locked.save()
            _apply_handler_change(locked, handler_name, now)
    except IntegrityError:
        for blob in uploaded:
            store.delete(blob)
        # Dois envios simultâneos com o mesmo token: vale o que chegou primeiro
        existing = ActivityLog.objects.filter(ticket=ticket, client_token=client_token).first() if client_token else None
        if existing is not None:
            return existing
        raise
    except Exception:
        for blob in uploaded:
            store.delete(blob)
        raise

    ticket.refresh_from_db()
    logger.info(f"Atividade registrada no ticket {ticket.ticket_number} por {handler_name} (status: {new_status})")
    log_ticket_event(
        actor, ticket, 'activity_recorded',
        activity_id=log.id, handler_name=handler_name, new_status=new_status, team_type=team_type,
    )
    if assignee is not None:
        log_ticket_event(actor, ticket, 'ticket_escalated', services_assignee=assignee.name)
    return log


# ---------------------------------------------------------------------------
# Configuração de atraso (somente administradores)
# ---------------------------------------------------------------------------

def _require_admin(user, action):
    if not is_portal_admin(user):
        log_security_event('forbidden_' + action, {
            'user_id': getattr(user, 'id', None),
            'username': getattr(user, 'username', None),
        })
        raise PortalPermissionError('Somente administradores podem alterar a configuração de atraso.')


def update_overdue_config(user, ticket, overdue_hours=None, overdue_enabled=None):
    """Altera limite e/ou ativação do atraso de um ticket"""
    _require_admin(user, 'overdue_update')

    changes = {}
    if overdue_hours is not None:
        ticket.overdue_hours = parse_overdue_hours(overdue_hours)
        changes['overdue_hours'] = ticket.overdue_hours
    if overdue_enabled is not None:
        ticket.overdue_enabled = bool(overdue_enabled)
        changes['overdue_enabled'] = ticket.overdue_enabled
    if not changes:
        raise MissingFieldError(['overdue_hours', 'overdue_enabled'], 'Informe o limite de atraso ou a ativação.')

    ticket.save(update_fields=list(changes) + ['updated_at'])
    log_ticket_event(user, ticket, 'overdue_config_updated', changes=changes)
    return ticket


def update_default_overdue_hours(user, overdue_hours):
    """Altera o limite padrão aplicado aos novos tickets"""
    _require_admin(user, 'overdue_default_update')

    config = OverdueSettings.load()
    config.default_overdue_hours = parse_overdue_hours(overdue_hours)
    config.updated_by = user
    config.save()
    log_user_action(user, 'overdue_default_updated', {'default_overdue_hours': config.default_overdue_hours})
    return config


# ---------------------------------------------------------------------------
# Convidados
# ---------------------------------------------------------------------------

def add_guest_mapping(user, guest, project_name):
    _require_admin(user, 'guest_mapping')
    project_name = (project_name or '').strip()
    if not project_name:
        raise MissingFieldError(['project_name'])
    if not getattr(guest, 'is_guest', False):
        raise MissingFieldError(['guest'], 'O usuário selecionado não é um convidado.')
    mapping, created = GuestMapping.objects.get_or_create(guest=guest, project_name=project_name)
    if created:
        log_user_action(user, 'guest_mapping_added', {'guest': guest.username, 'project_name': project_name})
    return mapping


def remove_guest_mapping(user, mapping):
    _require_admin(user, 'guest_mapping')
    details = {'guest': mapping.guest.username, 'project_name': mapping.project_name}
    mapping.delete()
    log_user_action(user, 'guest_mapping_removed', details)


# ---------------------------------------------------------------------------
# Notificações
# ---------------------------------------------------------------------------

def notifications_for(user, now=None):
    """
    Tickets do membro da equipe ligado ao usuário que ainda pedem atenção.
    Team PTS acompanha status; Team Services acompanha services_status dos
    tickets encaminhados a ele.
    """
    now = now or timezone.now()
    member = TeamMember.objects.filter(user=user).first()
    if member is None:
        return []

    tickets = Ticket.objects.filter(assigned_to=member)
    if member.team_type == TeamMember.TEAM_SERVICES:
        tickets = tickets.filter(current_team=TeamMember.TEAM_SERVICES)

    items = []
    for ticket in tickets.order_by('created_at'):
        view = team_view(ticket, member.team_type)
        if view['status'] in Ticket.TERMINAL_STATUSES:
            continue
        overdue = is_overdue(view, now)
        items.append({
            'ticket': ticket,
            'status': view['status'],
            'overdue': overdue,
            'kind': 'overdue' if overdue else 'pending',
            'message': (
                f"{ticket.ticket_number} está atrasado" if overdue
                else f"{ticket.ticket_number} aguarda atendimento"
            ),
        })
    # Atrasados primeiro
    items.sort(key=lambda item: not item['overdue'])
    return items
