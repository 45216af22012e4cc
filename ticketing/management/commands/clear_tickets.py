"""
Comando Django para limpar todos os tickets e seus registros do banco de dados.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from ticketing.models import ActivityLog, HandlerHistory, Ticket, TicketComment


class Command(BaseCommand):
    help = 'Limpa todos os tickets, comentários, atividades e histórico de responsáveis'

    def add_arguments(self, parser):
        parser.add_argument(
            '--confirm',
            action='store_true',
            help='Confirma a exclusão sem pedir confirmação interativa',
        )

    def handle(self, *args, **options):
        counts = {
            'ticket(s)': Ticket.objects.count(),
            'comentário(s)': TicketComment.objects.count(),
            'atividade(s)': ActivityLog.objects.count(),
            'responsável(is) no histórico': HandlerHistory.objects.count(),
        }

        if not any(counts.values()):
            self.stdout.write(self.style.SUCCESS('Não há tickets para limpar.'))
            return

        if not options['confirm']:
            summary = '\n'.join(f'   - {total} {label}' for label, total in counts.items())
            self.stdout.write(
                self.style.WARNING(
                    f'\nATENÇÃO: Esta operação irá deletar PERMANENTEMENTE:\n{summary}\n\n'
                    f'Esta ação NÃO pode ser desfeita!\n'
                )
            )
            confirm = input('Deseja continuar? (digite "SIM" para confirmar): ')
            if confirm.upper() != 'SIM':
                self.stdout.write(self.style.ERROR('Operação cancelada.'))
                return

        # Registros dependentes primeiro
        with transaction.atomic():
            TicketComment.objects.all().delete()
            ActivityLog.objects.all().delete()
            HandlerHistory.objects.all().delete()
            deleted_tickets = Ticket.objects.all().delete()[0]

        self.stdout.write(self.style.SUCCESS(f'{deleted_tickets} ticket(s) deletado(s).'))
        self.stdout.write(self.style.SUCCESS('Limpeza concluída com sucesso!'))
