import hashlib
import logging
import time
from urllib.parse import urlencode

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

logger = logging.getLogger(__name__)


def default_overdue_hours():
    return getattr(settings, 'DEFAULT_OVERDUE_HOURS', 24)


def avatar_url_for(name):
    """URL de avatar derivada apenas do nome (mesmo nome, mesma URL)"""
    name = (name or '').strip() or '?'
    background = hashlib.md5(name.lower().encode('utf-8')).hexdigest()[:6]
    query = urlencode({
        'name': name,
        'background': background,
        'color': 'fff',
        'size': 128,
    })
    base = getattr(settings, 'AVATAR_BASE_URL', 'https://ui-avatars.com/api/')
    return f"{base}?{query}"


class OverdueSettings(models.Model):
    """Configuração global: limite de atraso aplicado aos novos tickets"""

    default_overdue_hours = models.PositiveIntegerField(
        default=default_overdue_hours,
        validators=[MinValueValidator(1)],
        verbose_name="Limite padrão (horas)"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name="Atualizado por"
    )
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Atualizado em")

    class Meta:
        verbose_name = "Configuração de Atraso"
        verbose_name_plural = "Configurações de Atraso"
        constraints = [
            models.CheckConstraint(
                condition=Q(default_overdue_hours__gte=1),
                name='ticketing_overdue_settings_hours_gte_1',
            ),
        ]

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def save(self, *args, **kwargs):
        self.pk = 1
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Atraso padrão: {self.default_overdue_hours}h"


class TeamMember(models.Model):
    """Membro da equipe que atende tickets"""

    TEAM_PTS = 'pts'
    TEAM_SERVICES = 'services'

    TEAM_TYPES = [
        (TEAM_PTS, 'Team PTS'),
        (TEAM_SERVICES, 'Team Services'),
    ]

    name = models.CharField(max_length=150, verbose_name="Nome")
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='team_member',
        verbose_name="Usuário"
    )
    role = models.CharField(max_length=100, blank=True, default='Support Engineer', verbose_name="Função")
    team_type = models.CharField(max_length=20, choices=TEAM_TYPES, default=TEAM_PTS, verbose_name="Equipe")
    avatar_url = models.CharField(max_length=500, blank=True, verbose_name="Avatar")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")

    class Meta:
        verbose_name = "Membro da Equipe"
        verbose_name_plural = "Membros da Equipe"
        ordering = ['name']

    def save(self, *args, **kwargs):
        self.avatar_url = avatar_url_for(self.name)
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Ticket(models.Model):
    """Ticket de suporte"""

    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_RESOLVED = 'resolved'
    STATUS_CLOSED = 'closed'

    STATUS_CHOICES = [
        (STATUS_OPEN, 'Aberto'),
        (STATUS_IN_PROGRESS, 'Em Andamento'),
        (STATUS_RESOLVED, 'Resolvido'),
        (STATUS_CLOSED, 'Fechado'),
    ]
    STATUS_VALUES = [value for value, _ in STATUS_CHOICES]
    TERMINAL_STATUSES = (STATUS_RESOLVED, STATUS_CLOSED)

    PRIORITY_LOW = 'low'
    PRIORITY_MEDIUM = 'medium'
    PRIORITY_HIGH = 'high'
    PRIORITY_CRITICAL = 'critical'

    PRIORITY_CHOICES = [
        (PRIORITY_LOW, 'Baixa'),
        (PRIORITY_MEDIUM, 'Média'),
        (PRIORITY_HIGH, 'Alta'),
        (PRIORITY_CRITICAL, 'Crítica'),
    ]
    PRIORITY_VALUES = [value for value, _ in PRIORITY_CHOICES]

    ticket_number = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="Número do Ticket",
        help_text="Gerado automaticamente"
    )
    title = models.CharField(max_length=255, verbose_name="Título")
    description = models.TextField(verbose_name="Descrição")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN, verbose_name="Status")
    priority = models.CharField(max_length=20, choices=PRIORITY_CHOICES, default=PRIORITY_MEDIUM, verbose_name="Prioridade")
    category = models.CharField(max_length=100, blank=True, verbose_name="Categoria")

    project_name = models.CharField(max_length=255, blank=True, db_index=True, verbose_name="Projeto")
    customer_contact = models.CharField(max_length=100, blank=True, verbose_name="Contato do cliente")
    sales_name = models.CharField(max_length=150, blank=True, verbose_name="Vendedor")
    sn_unit = models.CharField(max_length=100, blank=True, verbose_name="S/N da unidade")
    photo_url = models.CharField(max_length=500, blank=True, verbose_name="Foto")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='created_tickets',
        verbose_name="Criado por"
    )
    assigned_to = models.ForeignKey(
        TeamMember,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tickets',
        verbose_name="Atendido por"
    )

    overdue_hours = models.PositiveIntegerField(
        default=default_overdue_hours,
        validators=[MinValueValidator(1)],
        verbose_name="Limite de atraso (horas)"
    )
    overdue_enabled = models.BooleanField(default=True, verbose_name="Controle de atraso ativo")

    # Escalonamento Team PTS -> Team Services
    current_team = models.CharField(
        max_length=20, choices=TeamMember.TEAM_TYPES, default=TeamMember.TEAM_PTS, verbose_name="Equipe atual"
    )
    services_status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, blank=True, default='', verbose_name="Status Team Services"
    )
    escalated_at = models.DateTimeField(null=True, blank=True, verbose_name="Encaminhado em")

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name="Criado em")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Atualizado em")
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Resolvido em")
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name="Fechado em")

    class Meta:
        verbose_name = "Ticket"
        verbose_name_plural = "Tickets"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'priority'], name='ticketing_t_status_5a1c2e_idx'),
            models.Index(fields=['created_by', 'created_at'], name='ticketing_t_created_8d03b4_idx'),
            models.Index(fields=['assigned_to', 'status'], name='ticketing_t_assigne_f2c9a7_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(overdue_hours__gte=1),
                name='ticketing_ticket_overdue_hours_gte_1',
            ),
        ]

    def _generate_ticket_number(self):
        prefix = "TKT"
        today = timezone.localdate()
        stamp = today.strftime("%Y%m%d")
        count = Ticket.objects.filter(ticket_number__startswith=f"{prefix}-{stamp}-").count()

        # Tentar gerar número único
        for attempt in range(10):
            candidate = f"{prefix}-{stamp}-{str(count + 1 + attempt).zfill(4)}"
            if not Ticket.objects.filter(ticket_number=candidate).exists():
                return candidate

        # Fallback: usar timestamp com microsegundos
        unique_suffix = str(int(time.time() * 1000000))[-4:]
        logger.warning(f"Fallback de número de ticket usado: {prefix}-{stamp}-{unique_suffix}")
        return f"{prefix}-{stamp}-{unique_suffix}"

    def save(self, *args, **kwargs):
        if not self.ticket_number:
            self.ticket_number = self._generate_ticket_number()

        # Atualizar timestamps baseado no status
        now = timezone.now()
        if self.status == self.STATUS_RESOLVED and not self.resolved_at:
            self.resolved_at = now
        if self.status == self.STATUS_CLOSED and not self.closed_at:
            self.closed_at = now

        super().save(*args, **kwargs)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def get_status_color(self, status=None):
        colors = {
            self.STATUS_OPEN: '#007bff',
            self.STATUS_IN_PROGRESS: '#ffc107',
            self.STATUS_RESOLVED: '#28a745',
            self.STATUS_CLOSED: '#6c757d',
        }
        return colors.get(status or self.status, '#6c757d')

    def get_priority_color(self):
        colors = {
            self.PRIORITY_LOW: '#6c757d',
            self.PRIORITY_MEDIUM: '#007bff',
            self.PRIORITY_HIGH: '#ffc107',
            self.PRIORITY_CRITICAL: '#dc3545',
        }
        return colors.get(self.priority, '#6c757d')

    @property
    def is_escalated(self):
        return self.current_team == TeamMember.TEAM_SERVICES

    def status_for_team(self, team_type):
        """Status visto pela equipe: o Team Services acompanha services_status"""
        if team_type == TeamMember.TEAM_SERVICES:
            return self.services_status or self.STATUS_OPEN
        return self.status

    def current_handler(self):
        return self.handler_history.filter(ended_at__isnull=True).first()

    def __str__(self):
        return f"{self.ticket_number} - {self.title}"


class TicketComment(models.Model):
    """Comentário do ticket; não é editado nem removido depois de criado"""

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='comments', verbose_name="Ticket")
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='ticket_comments',
        verbose_name="Autor"
    )
    content = models.TextField(verbose_name="Comentário")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")

    class Meta:
        verbose_name = "Comentário"
        verbose_name_plural = "Comentários"
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['ticket', 'created_at'], name='ticketing_t_ticket__3e7b10_idx'),
        ]

    def __str__(self):
        return f"Comentário {self.id} - Ticket {self.ticket.ticket_number}"


class ActivityLog(models.Model):
    """Registro de atendimento com foto de verificação facial"""

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='activity_logs', verbose_name="Ticket")
    handler_name = models.CharField(max_length=150, verbose_name="Responsável")
    team_type = models.CharField(max_length=20, blank=True, verbose_name="Equipe")
    action_taken = models.TextField(blank=True, verbose_name="Ação realizada")
    notes = models.TextField(verbose_name="Observações")
    new_status = models.CharField(max_length=20, choices=Ticket.STATUS_CHOICES, verbose_name="Novo status")
    assigned_to_services = models.BooleanField(default=False, verbose_name="Encaminhado ao Team Services")
    photo_url = models.CharField(max_length=500, blank=True, verbose_name="Foto de documentação")
    face_photo_url = models.CharField(max_length=500, verbose_name="Foto de verificação facial")
    file_url = models.CharField(max_length=500, blank=True, verbose_name="Relatório (PDF)")
    file_name = models.CharField(max_length=255, blank=True, verbose_name="Nome do relatório")
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs',
        verbose_name="Registrado por"
    )
    client_token = models.CharField(
        max_length=64,
        blank=True,
        verbose_name="Token do cliente",
        help_text="Chave de idempotência enviada pelo formulário"
    )
    created_at = models.DateTimeField(default=timezone.now, verbose_name="Registrado em")

    class Meta:
        verbose_name = "Registro de Atividade"
        verbose_name_plural = "Registros de Atividade"
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['ticket', 'created_at'], name='ticketing_a_ticket__9b41d2_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['ticket', 'client_token'],
                condition=~Q(client_token=''),
                name='ticketing_activity_unique_client_token',
            ),
        ]

    def __str__(self):
        return f"{self.handler_name} - {self.ticket.ticket_number} ({self.new_status})"


class HandlerHistory(models.Model):
    """Sequência de responsáveis pelo ticket"""

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name='handler_history', verbose_name="Ticket")
    handler_name = models.CharField(max_length=150, verbose_name="Responsável")
    started_at = models.DateTimeField(default=timezone.now, verbose_name="Início")
    ended_at = models.DateTimeField(null=True, blank=True, verbose_name="Fim")

    class Meta:
        verbose_name = "Histórico de Responsável"
        verbose_name_plural = "Histórico de Responsáveis"
        ordering = ['started_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['ticket'],
                condition=Q(ended_at__isnull=True),
                name='ticketing_single_open_handler',
            ),
        ]

    @property
    def is_open(self):
        return self.ended_at is None

    @property
    def duration(self):
        return (self.ended_at or timezone.now()) - self.started_at

    def __str__(self):
        return f"{self.handler_name} - {self.ticket.ticket_number}"


class GuestMapping(models.Model):
    """Projeto liberado para um usuário convidado"""

    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='guest_mappings',
        verbose_name="Convidado"
    )
    project_name = models.CharField(max_length=255, verbose_name="Projeto")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")

    class Meta:
        verbose_name = "Projeto do Convidado"
        verbose_name_plural = "Projetos dos Convidados"
        ordering = ['guest__username', 'project_name']
        constraints = [
            models.UniqueConstraint(fields=['guest', 'project_name'], name='ticketing_unique_guest_project'),
        ]

    def __str__(self):
        return f"{self.guest.username} → {self.project_name}"
