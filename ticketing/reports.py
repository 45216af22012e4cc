"""
Exportação de tickets em CSV
"""
from django.http import HttpResponse
from django.utils import timezone
import csv

from .overdue import overdue_status
from .stats import TicketStats

CSV_HEADERS = [
    'Número', 'Título', 'Projeto', 'Prioridade', 'Status', 'Equipe atual', 'Status Team Services', 'Responsável',
    'Criado por', 'Criado em', 'Tempo decorrido', 'Limite', 'Atrasado', 'Atividades',
]


def format_activity(log):
    created_at = timezone.localtime(log.created_at).strftime('%d/%m/%Y %H:%M')
    team = f" [{log.team_type.upper()}]" if log.team_type else ''
    line = f"[{created_at}] {log.handler_name}{team} ({log.get_new_status_display()}): {log.notes}"
    if log.action_taken:
        line += f" | Ação: {log.action_taken}"
    if log.assigned_to_services:
        line += " | Encaminhado ao Team Services"
    if log.file_url:
        line += f" | Relatório: {log.file_name or log.file_url}"
    return line


class ExportManager:
    """Gerenciador de exportação de relatórios"""

    @staticmethod
    def ticket_rows(tickets, now=None):
        now = now or timezone.now()
        for ticket in tickets:
            badge = overdue_status(ticket, now)
            activities = [format_activity(log) for log in ticket.activity_logs.all()]
            yield [
                ticket.ticket_number,
                ticket.title,
                ticket.project_name,
                ticket.get_priority_display(),
                ticket.get_status_display(),
                ticket.get_current_team_display(),
                ticket.get_services_status_display() if ticket.services_status else '',
                ticket.assigned_to.name if ticket.assigned_to else '',
                ticket.created_by.get_full_name() if ticket.created_by else '',
                timezone.localtime(ticket.created_at).strftime('%d/%m/%Y %H:%M'),
                badge['elapsed'],
                badge['threshold_label'],
                'Sim' if badge['overdue'] else 'Não',
                '\n'.join(activities) or '-',
            ]

    @staticmethod
    def export_tickets_csv(queryset, filename=None, now=None):
        """Resumo do dashboard seguido dos tickets e seus registros de atividade"""
        now = now or timezone.now()
        filename = filename or f"Ticket_Report_{timezone.localdate().isoformat()}.csv"
        response = HttpResponse(content_type='text/csv; charset=utf-8')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'

        stats = TicketStats.summary(queryset, now)
        writer = csv.writer(response)
        writer.writerow(['Resumo'])
        writer.writerow(['Total de tickets', stats['total']])
        writer.writerow(['Abertos', stats['by_status']['open']])
        writer.writerow(['Em andamento', stats['by_status']['in_progress']])
        writer.writerow(['Resolvidos', stats['by_status']['resolved']])
        writer.writerow(['Fechados', stats['by_status']['closed']])
        writer.writerow(['Atrasados', stats['overdue']])
        writer.writerow([])
        writer.writerow(CSV_HEADERS)

        tickets = queryset.select_related('assigned_to', 'created_by').prefetch_related('activity_logs')
        for row in ExportManager.ticket_rows(tickets, now):
            writer.writerow(row)
        return response
