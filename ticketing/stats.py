"""
Estatísticas do módulo de tickets (cards e gráficos do dashboard)
"""
from django.db.models import Count
from django.utils import timezone

from .models import HandlerHistory, Ticket
from .overdue import is_overdue


class TicketStats:
    """Gerador das métricas de tickets"""

    @staticmethod
    def summary(queryset, now=None):
        now = now or timezone.now()
        by_status = {value: 0 for value in Ticket.STATUS_VALUES}
        for row in queryset.order_by().values('status').annotate(total=Count('id')):
            by_status[row['status']] = row['total']

        by_priority = {value: 0 for value in Ticket.PRIORITY_VALUES}
        for row in queryset.order_by().values('priority').annotate(total=Count('id')):
            by_priority[row['priority']] = row['total']

        return {
            'total': sum(by_status.values()),
            'by_status': by_status,
            'by_priority': by_priority,
            'overdue': TicketStats.overdue_count(queryset, now),
            'handlers': TicketStats.handler_distribution(queryset),
        }

    @staticmethod
    def overdue_count(queryset, now=None):
        now = now or timezone.now()
        candidates = queryset.filter(overdue_enabled=True).exclude(status__in=Ticket.TERMINAL_STATUSES)
        return sum(1 for ticket in candidates if is_overdue(ticket, now))

    @staticmethod
    def handler_distribution(queryset):
        """Tickets por responsável atual (entrada aberta do histórico)"""
        rows = (
            HandlerHistory.objects
            .filter(ticket__in=queryset.order_by().values('id'), ended_at__isnull=True)
            .values('handler_name')
            .annotate(total=Count('ticket', distinct=True))
            .order_by('-total', 'handler_name')
        )
        return [{'handler_name': row['handler_name'], 'total': row['total']} for row in rows]
