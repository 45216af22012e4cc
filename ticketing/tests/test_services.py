"""
Testes das operações de tickets: criação, registro de atividade,
configuração de atraso, visibilidade e relatórios
"""
import re
from datetime import timedelta
from unittest import mock

from django.utils import timezone

from core.exceptions import (
    FacePhotoRequiredError, InvalidAssigneeError, InvalidDocumentError,
    InvalidOverdueHoursError, InvalidPriorityError, InvalidStatusError,
    MissingFieldError, PortalPermissionError, StorageError,
)
from ticketing import services
from ticketing.models import (
    ActivityLog, GuestMapping, HandlerHistory, OverdueSettings, TeamMember, Ticket,
    avatar_url_for,
)
from ticketing.reports import ExportManager
from ticketing.stats import TicketStats
from ticketing.storage import BlobStore

from .helpers import (
    BrokenStorage, MediaTestCase, RecordingStore, User, jpeg_upload, make_user,
    pdf_upload,
)


class TeamMemberTest(MediaTestCase):

    def test_team_user_gets_team_member(self):
        user = make_user('budi', first_name='Budi', team_type=User.TEAM_SERVICES)
        member = TeamMember.objects.get(user=user)
        self.assertEqual(member.name, 'Budi')
        self.assertEqual(member.team_type, TeamMember.TEAM_SERVICES)

    def test_guest_and_admin_do_not_get_team_member(self):
        guest = make_user('convidado', role=User.ROLE_GUEST)
        admin = make_user('chefe', role=User.ROLE_ADMIN)
        self.assertFalse(TeamMember.objects.filter(user__in=[guest, admin]).exists())

    def test_avatar_url_is_deterministic(self):
        first = TeamMember.objects.create(name='Siti Rahma')
        second = TeamMember.objects.create(name='Siti Rahma')
        self.assertEqual(first.avatar_url, second.avatar_url)
        self.assertEqual(first.avatar_url, avatar_url_for('Siti Rahma'))
        self.assertIn('name=Siti+Rahma', first.avatar_url)
        self.assertNotEqual(avatar_url_for('Siti Rahma'), avatar_url_for('Agus'))


class CreateTicketTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('eng', first_name='Eng')
        self.member = TeamMember.objects.get(user=self.user)

    def test_create_with_defaults(self):
        ticket = services.create_ticket(self.user, {'title': ' Sem sinal ', 'description': 'Unidade offline'})
        self.assertRegex(ticket.ticket_number, r'^TKT-\d{8}-\d{4}$')
        self.assertEqual(ticket.title, 'Sem sinal')
        self.assertEqual(ticket.status, Ticket.STATUS_OPEN)
        self.assertEqual(ticket.priority, Ticket.PRIORITY_MEDIUM)
        self.assertEqual(ticket.overdue_hours, 24)
        self.assertTrue(ticket.overdue_enabled)
        self.assertEqual(ticket.created_by, self.user)
        self.assertFalse(ticket.handler_history.exists())

    def test_ticket_numbers_are_sequential(self):
        first = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})
        second = services.create_ticket(self.user, {'title': 'B', 'description': 'b'})
        self.assertTrue(first.ticket_number.endswith('-0001'))
        self.assertTrue(second.ticket_number.endswith('-0002'))

    def test_missing_fields(self):
        with self.assertRaises(MissingFieldError) as ctx:
            services.create_ticket(self.user, {'title': '   ', 'description': ''})
        self.assertEqual(ctx.exception.fields, ['title', 'description'])
        self.assertFalse(Ticket.objects.exists())

    def test_invalid_priority_and_status(self):
        with self.assertRaises(InvalidPriorityError):
            services.create_ticket(self.user, {'title': 'A', 'description': 'a', 'priority': 'urgent'})
        with self.assertRaises(InvalidStatusError):
            services.create_ticket(self.user, {'title': 'A', 'description': 'a', 'status': 'pending'})

    def test_invalid_overdue_hours(self):
        for value in ('0', '-3', 'abc', '1.5', 0):
            with self.subTest(value=value):
                with self.assertRaises(InvalidOverdueHoursError):
                    services.create_ticket(self.user, {'title': 'A', 'description': 'a', 'overdue_hours': value})
        self.assertFalse(Ticket.objects.exists())

    def test_default_overdue_hours_from_settings(self):
        admin = make_user('chefe', role=User.ROLE_ADMIN)
        services.update_default_overdue_hours(admin, 48)
        ticket = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})
        self.assertEqual(ticket.overdue_hours, 48)

    def test_assignee_opens_handler_history(self):
        ticket = services.create_ticket(self.user, {
            'title': 'A', 'description': 'a', 'assigned_to': self.member, 'overdue_hours': '12',
        })
        self.assertEqual(ticket.overdue_hours, 12)
        history = list(ticket.handler_history.all())
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].handler_name, 'Eng')
        self.assertIsNone(history[0].ended_at)

    def test_photo_uploaded(self):
        store = RecordingStore()
        ticket = services.create_ticket(
            self.user, {'title': 'A', 'description': 'a'}, photo=jpeg_upload('foto.jpg'), store=store,
        )
        self.assertEqual(len(store.uploaded), 1)
        self.assertEqual(ticket.photo_url, store.uploaded[0].url)


class RecordActivityTest(MediaTestCase):
    """Registro de atividade e seus efeitos no ticket"""

    def setUp(self):
        super().setUp()
        self.budi = make_user('budi', first_name='Budi')
        self.siti = make_user('siti', first_name='Siti')
        self.ticket = services.create_ticket(self.budi, {
            'title': 'Link caiu', 'description': 'Cliente sem internet',
            'assigned_to': TeamMember.objects.get(user=self.budi),
        })

    def _record(self, actor, **data):
        data.setdefault('notes', 'Verificado no local')
        data.setdefault('new_status', Ticket.STATUS_IN_PROGRESS)
        return services.record_activity(self.ticket, actor, data, face_photo=jpeg_upload())

    def test_status_and_log_written_together(self):
        log = self._record(self.budi, action_taken='Reiniciei a ONU')
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_IN_PROGRESS)
        self.assertEqual(log.handler_name, 'Budi')
        self.assertEqual(log.new_status, Ticket.STATUS_IN_PROGRESS)
        self.assertTrue(log.face_photo_url.startswith('/media/faces/'))
        self.assertEqual(log.recorded_by, self.budi)

    def test_same_handler_keeps_single_entry(self):
        self._record(self.budi)
        self._record(self.budi, new_status=Ticket.STATUS_RESOLVED)
        history = list(self.ticket.handler_history.all())
        self.assertEqual(len(history), 1)
        self.assertIsNone(history[0].ended_at)

    def test_handler_change_closes_previous_entry(self):
        self._record(self.budi)
        self._record(self.siti)
        history = list(self.ticket.handler_history.all())
        self.assertEqual([h.handler_name for h in history], ['Budi', 'Siti'])
        self.assertIsNotNone(history[0].ended_at)
        self.assertIsNone(history[1].ended_at)
        self.assertEqual(self.ticket.handler_history.filter(ended_at__isnull=True).count(), 1)

    def test_handler_name_can_be_typed(self):
        log = self._record(self.budi, handler_name='Técnico Terceirizado')
        self.assertEqual(log.handler_name, 'Técnico Terceirizado')
        self.assertEqual(self.ticket.current_handler().handler_name, 'Técnico Terceirizado')

    def test_resolving_sets_resolved_at(self):
        self._record(self.budi, new_status=Ticket.STATUS_RESOLVED)
        self.ticket.refresh_from_db()
        self.assertIsNotNone(self.ticket.resolved_at)

    def test_sn_unit_updated(self):
        self._record(self.budi, sn_unit='SN-4455')
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.sn_unit, 'SN-4455')

    def test_face_photo_required(self):
        with self.assertRaises(FacePhotoRequiredError):
            services.record_activity(self.ticket, self.budi, {
                'notes': 'x', 'new_status': Ticket.STATUS_CLOSED,
            })
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_OPEN)
        self.assertFalse(ActivityLog.objects.exists())

    def test_missing_notes(self):
        with self.assertRaises(MissingFieldError) as ctx:
            services.record_activity(self.ticket, self.budi, {'new_status': 'open'}, face_photo=jpeg_upload())
        self.assertEqual(ctx.exception.fields, ['notes'])

    def test_invalid_status(self):
        with self.assertRaises(InvalidStatusError):
            self._record(self.budi, new_status='waiting')
        self.assertFalse(ActivityLog.objects.exists())

    def test_client_token_is_idempotent(self):
        first = self._record(self.budi, client_token='abc123')
        second = self._record(self.budi, client_token='abc123', new_status=Ticket.STATUS_CLOSED)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(ActivityLog.objects.count(), 1)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_IN_PROGRESS)

    def test_failed_transaction_removes_uploaded_photos(self):
        store = RecordingStore()
        with mock.patch('ticketing.services._apply_handler_change', side_effect=RuntimeError('falha')):
            with self.assertRaises(RuntimeError):
                services.record_activity(
                    self.ticket, self.siti,
                    {'notes': 'x', 'new_status': Ticket.STATUS_CLOSED},
                    photo=jpeg_upload('doc.jpg'), face_photo=jpeg_upload(), store=store,
                )
        self.assertEqual(len(store.uploaded), 2)
        self.assertEqual(store.deleted, store.uploaded)
        self.assertFalse(ActivityLog.objects.exists())
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_OPEN)
        self.assertEqual(self.ticket.handler_history.count(), 1)

    def test_storage_failure_retries_then_fails(self):
        storage = BrokenStorage()
        with self.assertRaises(StorageError):
            services.record_activity(
                self.ticket, self.budi, {'notes': 'x', 'new_status': Ticket.STATUS_CLOSED},
                face_photo=jpeg_upload(), store=BlobStore(storage=storage, retries=3),
            )
        self.assertEqual(storage.attempts, 3)
        self.assertFalse(ActivityLog.objects.exists())


class OverdueConfigTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.admin = make_user('chefe', role=User.ROLE_ADMIN)
        self.user = make_user('eng')
        self.ticket = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})

    def test_non_admin_rejected(self):
        with self.assertRaises(PortalPermissionError):
            services.update_overdue_config(self.user, self.ticket, overdue_hours=2)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.overdue_hours, 24)

    def test_admin_updates(self):
        services.update_overdue_config(self.admin, self.ticket, overdue_hours='6', overdue_enabled=False)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.overdue_hours, 6)
        self.assertFalse(self.ticket.overdue_enabled)

    def test_invalid_hours(self):
        with self.assertRaises(InvalidOverdueHoursError):
            services.update_overdue_config(self.admin, self.ticket, overdue_hours=0)

    def test_nothing_to_change(self):
        with self.assertRaises(MissingFieldError):
            services.update_overdue_config(self.admin, self.ticket)

    def test_default_hours_admin_only(self):
        with self.assertRaises(PortalPermissionError):
            services.update_default_overdue_hours(self.user, 12)
        config = services.update_default_overdue_hours(self.admin, '12')
        self.assertEqual(config.default_overdue_hours, 12)
        self.assertEqual(OverdueSettings.objects.count(), 1)


class VisibilityAndFilterTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('eng')
        self.now = timezone.now()
        self.alpha = services.create_ticket(self.user, {
            'title': 'Roteador travado', 'description': 'x', 'project_name': 'Alpha', 'priority': 'high',
        })
        self.beta = services.create_ticket(self.user, {
            'title': 'Sem energia', 'description': 'Painel desligado', 'project_name': 'Beta', 'priority': 'low',
        })
        Ticket.objects.filter(pk=self.alpha.pk).update(created_at=self.now - timedelta(hours=30))

    def test_search_is_case_insensitive(self):
        qs = services.filter_tickets(Ticket.objects.all(), search='ROTEADOR')
        self.assertEqual(list(qs), [self.alpha])
        qs = services.filter_tickets(Ticket.objects.all(), search=self.beta.ticket_number.lower())
        self.assertEqual(list(qs), [self.beta])

    def test_empty_search_matches_all(self):
        self.assertEqual(services.filter_tickets(Ticket.objects.all(), search='  ').count(), 2)

    def test_filters_combine(self):
        qs = services.filter_tickets(Ticket.objects.all(), status='open', priority='low')
        self.assertEqual(list(qs), [self.beta])
        qs = services.filter_tickets(Ticket.objects.all(), status='closed', priority='low')
        self.assertEqual(list(qs), [])

    def test_overdue_filter(self):
        result = services.filter_tickets(Ticket.objects.all(), overdue=True, now=self.now)
        self.assertEqual(result, [self.alpha])

    def test_overdue_until_resolved(self):
        """Limite de 1h: atrasado aos 61 min e fora da lista depois de resolvido"""
        ticket = services.create_ticket(self.user, {'title': 'Queda', 'description': 'x', 'overdue_hours': 1})
        created_at = ticket.created_at
        before = created_at + timedelta(minutes=59)
        later = created_at + timedelta(minutes=61)
        self.assertNotIn(ticket, services.filter_tickets(Ticket.objects.all(), overdue=True, now=before))
        self.assertIn(ticket, services.filter_tickets(Ticket.objects.all(), overdue=True, now=later))

        services.record_activity(
            ticket, self.user, {'notes': 'Resolvido', 'new_status': Ticket.STATUS_RESOLVED},
            face_photo=jpeg_upload(), store=RecordingStore(), now=later,
        )
        ticket.refresh_from_db()
        self.assertEqual(ticket.created_at, created_at)
        self.assertNotIn(ticket, services.filter_tickets(Ticket.objects.all(), overdue=True, now=later))

    def test_guest_sees_only_mapped_projects(self):
        admin = make_user('chefe', role=User.ROLE_ADMIN)
        guest = make_user('convidado', role=User.ROLE_GUEST)
        self.assertEqual(services.visible_tickets(guest).count(), 0)
        services.add_guest_mapping(admin, guest, 'Beta')
        self.assertEqual(list(services.visible_tickets(guest)), [self.beta])
        self.assertEqual(services.visible_tickets(self.user).count(), 2)

    def test_guest_mapping_admin_only(self):
        guest = make_user('convidado', role=User.ROLE_GUEST)
        with self.assertRaises(PortalPermissionError):
            services.add_guest_mapping(self.user, guest, 'Beta')
        self.assertFalse(GuestMapping.objects.exists())


class NotificationsAndReportsTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('budi', first_name='Budi')
        self.member = TeamMember.objects.get(user=self.user)
        self.now = timezone.now()
        self.fresh = services.create_ticket(self.user, {'title': 'Novo', 'description': 'x', 'assigned_to': self.member})
        self.late = services.create_ticket(self.user, {'title': 'Antigo', 'description': 'y', 'assigned_to': self.member})
        Ticket.objects.filter(pk=self.late.pk).update(created_at=self.now - timedelta(days=3))
        self.done = services.create_ticket(self.user, {
            'title': 'Feito', 'description': 'z', 'assigned_to': self.member, 'status': 'closed',
        })

    def test_notifications_overdue_first(self):
        items = services.notifications_for(self.user, self.now)
        self.assertEqual([item['ticket'].pk for item in items], [self.late.pk, self.fresh.pk])
        self.assertEqual(items[0]['kind'], 'overdue')
        self.assertEqual(items[1]['kind'], 'pending')

    def test_notifications_without_team_member(self):
        admin = make_user('chefe', role=User.ROLE_ADMIN)
        self.assertEqual(services.notifications_for(admin, self.now), [])

    def test_stats_summary(self):
        stats = TicketStats.summary(Ticket.objects.all(), self.now)
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['by_status']['open'], 2)
        self.assertEqual(stats['by_status']['closed'], 1)
        self.assertEqual(stats['overdue'], 1)
        self.assertEqual(stats['handlers'], [{'handler_name': 'Budi', 'total': 3}])

    def test_csv_export(self):
        services.record_activity(
            self.late, self.user, {'notes': 'Troca de cabo', 'new_status': 'in_progress'},
            face_photo=jpeg_upload(), store=RecordingStore(),
        )
        response = ExportManager.export_tickets_csv(Ticket.objects.all(), now=self.now)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('attachment; filename="Ticket_Report_', response['Content-Disposition'])
        content = response.content.decode('utf-8')
        self.assertIn('Total de tickets,3', content)
        self.assertIn(self.late.ticket_number, content)
        self.assertIn('Troca de cabo', content)
        self.assertTrue(re.search(r'Atrasados,\d', content))


class ServicesEscalationTest(MediaTestCase):
    """Encaminhamento do Team PTS ao Team Services e status por equipe"""

    def setUp(self):
        super().setUp()
        self.budi = make_user('budi', first_name='Budi')
        self.rina = make_user('rina', first_name='Rina', team_type=User.TEAM_SERVICES)
        self.pts_member = TeamMember.objects.get(user=self.budi)
        self.services_member = TeamMember.objects.get(user=self.rina)
        self.ticket = services.create_ticket(self.budi, {
            'title': 'Link caiu', 'description': 'Cliente sem internet', 'assigned_to': self.pts_member,
        })

    def _record(self, actor, store=None, report_file=None, **data):
        data.setdefault('notes', 'Verificado no local')
        data.setdefault('new_status', Ticket.STATUS_IN_PROGRESS)
        return services.record_activity(
            self.ticket, actor, data, face_photo=jpeg_upload(),
            store=store or RecordingStore(), report_file=report_file,
        )

    def _escalate(self):
        return self._record(self.budi, assign_to_services=True, services_assignee=self.services_member)

    def test_pts_escalates_to_services(self):
        log = self._escalate()
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_IN_PROGRESS)
        self.assertEqual(self.ticket.current_team, TeamMember.TEAM_SERVICES)
        self.assertEqual(self.ticket.services_status, Ticket.STATUS_OPEN)
        self.assertEqual(self.ticket.assigned_to, self.services_member)
        self.assertIsNotNone(self.ticket.escalated_at)
        self.assertTrue(log.assigned_to_services)
        self.assertEqual(log.team_type, TeamMember.TEAM_PTS)

    def test_escalation_accepts_member_pk(self):
        self._record(self.budi, assign_to_services=True, services_assignee=self.services_member.pk)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.assigned_to, self.services_member)

    def test_escalation_requires_assignee(self):
        with self.assertRaises(MissingFieldError) as ctx:
            self._record(self.budi, assign_to_services=True)
        self.assertEqual(ctx.exception.fields, ['services_assignee'])
        self.assertFalse(ActivityLog.objects.exists())

    def test_escalation_rejects_pts_assignee(self):
        with self.assertRaises(InvalidAssigneeError):
            self._record(self.budi, assign_to_services=True, services_assignee=self.pts_member)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.current_team, TeamMember.TEAM_PTS)
        self.assertFalse(ActivityLog.objects.exists())

    def test_services_updates_only_services_status(self):
        self._escalate()
        log = self._record(self.rina, new_status=Ticket.STATUS_RESOLVED)
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_IN_PROGRESS)
        self.assertEqual(self.ticket.services_status, Ticket.STATUS_RESOLVED)
        self.assertEqual(log.team_type, TeamMember.TEAM_SERVICES)
        self.assertEqual(self.ticket.status_for_team(TeamMember.TEAM_SERVICES), Ticket.STATUS_RESOLVED)
        self.assertEqual(self.ticket.status_for_team(TeamMember.TEAM_PTS), Ticket.STATUS_IN_PROGRESS)

    def test_services_cannot_escalate(self):
        with self.assertRaises(InvalidAssigneeError):
            self._record(self.rina, assign_to_services=True, services_assignee=self.services_member)
        self.assertFalse(ActivityLog.objects.exists())

    def test_services_sees_only_escalated_tickets(self):
        other = services.create_ticket(self.budi, {'title': 'Outro', 'description': 'x'})
        self.assertEqual(services.visible_tickets(self.rina).count(), 0)
        self._escalate()
        self.assertEqual(list(services.visible_tickets(self.rina)), [self.ticket])
        self.assertEqual(set(services.visible_tickets(self.budi)), {self.ticket, other})

    def test_services_notifications_follow_services_status(self):
        now = timezone.now()
        self.assertEqual(services.notifications_for(self.rina, now), [])
        self._escalate()
        items = services.notifications_for(self.rina, now)
        self.assertEqual([item['ticket'].pk for item in items], [self.ticket.pk])
        self.assertEqual(items[0]['status'], Ticket.STATUS_OPEN)

        # Resolvido pelo PTS continua pendente para o Services
        Ticket.objects.filter(pk=self.ticket.pk).update(
            status=Ticket.STATUS_RESOLVED, created_at=now - timedelta(hours=30),
        )
        items = services.notifications_for(self.rina, now)
        self.assertEqual(len(items), 1)
        self.assertTrue(items[0]['overdue'])

        self._record(self.rina, new_status=Ticket.STATUS_CLOSED)
        self.assertEqual(services.notifications_for(self.rina, now), [])

    def test_pdf_report_attached(self):
        log = self._record(self.budi, store=BlobStore(), report_file=pdf_upload())
        self.assertEqual(log.file_name, 'laporan.pdf')
        self.assertTrue(log.file_url.startswith('/media/reports/'))
        self.assertTrue(log.file_url.endswith('.pdf'))

    def test_report_must_be_pdf(self):
        store = BlobStore()
        with mock.patch.object(store, 'delete', wraps=store.delete) as delete:
            with self.assertRaises(InvalidDocumentError):
                self._record(self.budi, store=store, report_file=jpeg_upload('laporan.pdf'))
        # A foto do rosto já enviada é removida
        self.assertEqual(delete.call_count, 1)
        self.assertFalse(ActivityLog.objects.exists())

    def test_csv_shows_escalation(self):
        self._escalate()
        response = ExportManager.export_tickets_csv(Ticket.objects.all())
        content = response.content.decode('utf-8')
        self.assertIn('Status Team Services', content)
        self.assertIn('Encaminhado ao Team Services', content)
        self.assertIn('[PTS]', content)
