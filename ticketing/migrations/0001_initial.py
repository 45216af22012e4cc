import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import ticketing.models
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [('open', 'Aberto'), ('in_progress', 'Em Andamento'), ('resolved', 'Resolvido'), ('closed', 'Fechado')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='OverdueSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('default_overdue_hours', models.PositiveIntegerField(default=ticketing.models.default_overdue_hours, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Limite padrão (horas)')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Atualizado por')),
            ],
            options={
                'verbose_name': 'Configuração de Atraso',
                'verbose_name_plural': 'Configurações de Atraso',
                'constraints': [models.CheckConstraint(condition=models.Q(('default_overdue_hours__gte', 1)), name='ticketing_overdue_settings_hours_gte_1')],
            },
        ),
        migrations.CreateModel(
            name='TeamMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, verbose_name='Nome')),
                ('role', models.CharField(blank=True, default='Support Engineer', max_length=100, verbose_name='Função')),
                ('team_type', models.CharField(choices=[('pts', 'Team PTS'), ('services', 'Team Services')], default='pts', max_length=20, verbose_name='Equipe')),
                ('avatar_url', models.CharField(blank=True, max_length=500, verbose_name='Avatar')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('user', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='team_member', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Membro da Equipe',
                'verbose_name_plural': 'Membros da Equipe',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('ticket_number', models.CharField(help_text='Gerado automaticamente', max_length=20, unique=True, verbose_name='Número do Ticket')),
                ('title', models.CharField(max_length=255, verbose_name='Título')),
                ('description', models.TextField(verbose_name='Descrição')),
                ('status', models.CharField(choices=STATUS_CHOICES, default='open', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(choices=[('low', 'Baixa'), ('medium', 'Média'), ('high', 'Alta'), ('critical', 'Crítica')], default='medium', max_length=20, verbose_name='Prioridade')),
                ('category', models.CharField(blank=True, max_length=100, verbose_name='Categoria')),
                ('project_name', models.CharField(blank=True, db_index=True, max_length=255, verbose_name='Projeto')),
                ('customer_contact', models.CharField(blank=True, max_length=100, verbose_name='Contato do cliente')),
                ('sales_name', models.CharField(blank=True, max_length=150, verbose_name='Vendedor')),
                ('sn_unit', models.CharField(blank=True, max_length=100, verbose_name='S/N da unidade')),
                ('photo_url', models.CharField(blank=True, max_length=500, verbose_name='Foto')),
                ('overdue_hours', models.PositiveIntegerField(default=ticketing.models.default_overdue_hours, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Limite de atraso (horas)')),
                ('overdue_enabled', models.BooleanField(default=True, verbose_name='Controle de atraso ativo')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolvido em')),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Fechado em')),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tickets', to='ticketing.teammember', verbose_name='Atendido por')),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='created_tickets', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
            ],
            options={
                'verbose_name': 'Ticket',
                'verbose_name_plural': 'Tickets',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status', 'priority'], name='ticketing_t_status_5a1c2e_idx'),
                    models.Index(fields=['created_by', 'created_at'], name='ticketing_t_created_8d03b4_idx'),
                    models.Index(fields=['assigned_to', 'status'], name='ticketing_t_assigne_f2c9a7_idx'),
                ],
                'constraints': [models.CheckConstraint(condition=models.Q(('overdue_hours__gte', 1)), name='ticketing_ticket_overdue_hours_gte_1')],
            },
        ),
        migrations.CreateModel(
            name='TicketComment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('content', models.TextField(verbose_name='Comentário')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('author', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ticket_comments', to=settings.AUTH_USER_MODEL, verbose_name='Autor')),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='ticketing.ticket', verbose_name='Ticket')),
            ],
            options={
                'verbose_name': 'Comentário',
                'verbose_name_plural': 'Comentários',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['ticket', 'created_at'], name='ticketing_t_ticket__3e7b10_idx')],
            },
        ),
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('handler_name', models.CharField(max_length=150, verbose_name='Responsável')),
                ('team_type', models.CharField(blank=True, max_length=20, verbose_name='Equipe')),
                ('action_taken', models.TextField(blank=True, verbose_name='Ação realizada')),
                ('notes', models.TextField(verbose_name='Observações')),
                ('new_status', models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name='Novo status')),
                ('photo_url', models.CharField(blank=True, max_length=500, verbose_name='Foto de documentação')),
                ('face_photo_url', models.CharField(max_length=500, verbose_name='Foto de verificação facial')),
                ('client_token', models.CharField(blank=True, help_text='Chave de idempotência enviada pelo formulário', max_length=64, verbose_name='Token do cliente')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Registrado em')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='activity_logs', to=settings.AUTH_USER_MODEL, verbose_name='Registrado por')),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity_logs', to='ticketing.ticket', verbose_name='Ticket')),
            ],
            options={
                'verbose_name': 'Registro de Atividade',
                'verbose_name_plural': 'Registros de Atividade',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['ticket', 'created_at'], name='ticketing_a_ticket__9b41d2_idx')],
                'constraints': [models.UniqueConstraint(condition=models.Q(('client_token', ''), _negated=True), fields=('ticket', 'client_token'), name='ticketing_activity_unique_client_token')],
            },
        ),
        migrations.CreateModel(
            name='HandlerHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('handler_name', models.CharField(max_length=150, verbose_name='Responsável')),
                ('started_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Início')),
                ('ended_at', models.DateTimeField(blank=True, null=True, verbose_name='Fim')),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='handler_history', to='ticketing.ticket', verbose_name='Ticket')),
            ],
            options={
                'verbose_name': 'Histórico de Responsável',
                'verbose_name_plural': 'Histórico de Responsáveis',
                'ordering': ['started_at', 'id'],
                'constraints': [models.UniqueConstraint(condition=models.Q(('ended_at__isnull', True)), fields=('ticket',), name='ticketing_single_open_handler')],
            },
        ),
        migrations.CreateModel(
            name='GuestMapping',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('project_name', models.CharField(max_length=255, verbose_name='Projeto')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('guest', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='guest_mappings', to=settings.AUTH_USER_MODEL, verbose_name='Convidado')),
            ],
            options={
                'verbose_name': 'Projeto do Convidado',
                'verbose_name_plural': 'Projetos dos Convidados',
                'ordering': ['guest__username', 'project_name'],
                'constraints': [models.UniqueConstraint(fields=('guest', 'project_name'), name='ticketing_unique_guest_project')],
            },
        ),
    ]
