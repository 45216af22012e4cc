"""
Cálculo do status de atraso de um ticket.

Funções puras sobre (ticket, agora): não consultam o banco e nunca lançam
exceção. O ticket pode ser uma instância do modelo ou um dicionário com os
mesmos campos (created_at, status, overdue_hours, overdue_enabled).
"""
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone as dt_timezone

from django.utils import timezone

DEFAULT_OVERDUE_HOURS = 24
TERMINAL_STATUSES = ('resolved', 'closed')


def _field(ticket, name, default=None):
    if isinstance(ticket, Mapping):
        return ticket.get(name, default)
    return getattr(ticket, name, default)


def _aware(value):
    if timezone.is_naive(value):
        return value.replace(tzinfo=dt_timezone.utc)
    return value


def threshold_hours(ticket) -> int:
    """Limite configurado; ausente ou inválido vale 24"""
    hours = _field(ticket, 'overdue_hours')
    if isinstance(hours, bool):
        return DEFAULT_OVERDUE_HOURS
    try:
        hours = int(hours)
    except (TypeError, ValueError):
        return DEFAULT_OVERDUE_HOURS
    return hours if hours >= 1 else DEFAULT_OVERDUE_HOURS


def is_enabled(ticket) -> bool:
    enabled = _field(ticket, 'overdue_enabled', True)
    return True if enabled is None else bool(enabled)


def elapsed_delta(ticket, now=None) -> timedelta:
    """Tempo desde a criação; created_at no futuro conta como zero"""
    created_at = _field(ticket, 'created_at')
    if not isinstance(created_at, datetime):
        return timedelta(0)
    now = _aware(now or timezone.now())
    delta = now - _aware(created_at)
    return max(delta, timedelta(0))


def is_overdue(ticket, now=None) -> bool:
    if not is_enabled(ticket):
        return False
    if _field(ticket, 'status') in TERMINAL_STATUSES:
        return False
    return elapsed_delta(ticket, now) >= timedelta(hours=threshold_hours(ticket))


def elapsed(ticket, now=None) -> str:
    """Formato '{d}d {h}h' a partir de 24 horas, senão '{h}h {m}m'"""
    total_minutes = int(elapsed_delta(ticket, now).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours >= 24:
        days, hours = divmod(hours, 24)
        return f"{days}d {hours}h"
    return f"{hours}h {minutes}m"


def threshold_label(ticket) -> str:
    if not is_enabled(ticket):
        return ''
    hours = threshold_hours(ticket)
    if hours % 24 == 0:
        return f"{hours // 24}d"
    return f"{hours}h"


def overdue_status(ticket, now=None) -> dict:
    """Badge usado pelas páginas e pela API"""
    now = now or timezone.now()
    overdue = is_overdue(ticket, now)
    return {
        'overdue': overdue,
        'elapsed': elapsed(ticket, now),
        'threshold_label': threshold_label(ticket),
        'enabled': is_enabled(ticket),
        'label': 'Atrasado' if overdue else '',
    }
