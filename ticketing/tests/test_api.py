"""
Testes da API REST de tickets e do formato de erro {"error": {...}}
"""
import json
from datetime import timedelta
from urllib.parse import urlencode

from django.urls import reverse
from django.utils import timezone

from ticketing import services
from ticketing.models import ActivityLog, TeamMember, Ticket

from .helpers import MediaTestCase, User, jpeg_data_url, jpeg_upload, make_user, pdf_upload


class TicketApiTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('budi', first_name='Budi')
        self.admin = make_user('chefe', role=User.ROLE_ADMIN)
        self.member = TeamMember.objects.get(user=self.user)
        self.ticket = services.create_ticket(self.user, {
            'title': 'Link caiu', 'description': 'Cliente sem internet', 'project_name': 'Alpha',
        })
        self.list_url = reverse('api:ticket-list')
        self.client.force_login(self.user)

    def _error(self, response):
        return response.json()['error']

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get(self.list_url)
        self.assertIn(response.status_code, (401, 403))
        self.assertEqual(self._error(response)['code'], 'not_authenticated')

    def test_requires_ticketing_menu(self):
        outsider = make_user('outsider', allowed_menus=['daily-report'])
        self.client.force_login(outsider)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self._error(response)['code'], 'forbidden')

    def test_list_with_overdue_badge(self):
        Ticket.objects.filter(pk=self.ticket.pk).update(created_at=timezone.now() - timedelta(hours=30))
        services.create_ticket(self.user, {'title': 'Outro', 'description': 'x'})

        response = self.client.get(self.list_url, {'overdue': '1'})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['ticket_number'], self.ticket.ticket_number)
        self.assertTrue(data[0]['overdue']['overdue'])
        self.assertEqual(data[0]['overdue']['label'], 'Atrasado')

        response = self.client.get(self.list_url, {'q': 'outro'})
        self.assertEqual([t['title'] for t in response.json()], ['Outro'])

    def test_retrieve_nests_history(self):
        response = self.client.get(reverse('api:ticket-detail', args=[self.ticket.pk]))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['comments'], [])
        self.assertEqual(body['activity_logs'], [])
        self.assertEqual(body['handler_history'], [])

    def test_unknown_ticket(self):
        response = self.client.get(reverse('api:ticket-detail', args=[9999]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self._error(response)['code'], 'not_found')

    def test_create_ticket(self):
        response = self.client.post(self.list_url, {
            'title': 'Sem energia',
            'description': 'Painel desligado',
            'priority': 'high',
            'assigned_to': self.member.pk,
            'overdue_hours': '8',
        })
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertRegex(body['ticket_number'], r'^TKT-\d{8}-\d{4}$')
        self.assertEqual(body['overdue_hours'], 8)
        self.assertEqual(body['assigned_to']['name'], 'Budi')
        self.assertEqual(len(body['handler_history']), 1)

    def test_create_missing_fields(self):
        response = self.client.post(self.list_url, {'title': '', 'priority': 'low'})
        self.assertEqual(response.status_code, 400)
        error = self._error(response)
        self.assertEqual(error['code'], 'missing_field')
        self.assertEqual(error['fields'], ['description', 'title'])

    def test_create_invalid_overdue_hours(self):
        response = self.client.post(self.list_url, {'title': 'A', 'description': 'a', 'overdue_hours': '0'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._error(response)['code'], 'invalid_overdue_hours')

    def test_create_invalid_priority(self):
        response = self.client.post(self.list_url, {'title': 'A', 'description': 'a', 'priority': 'urgent'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self._error(response)['code'], 'invalid_priority')

    def test_guest_cannot_create(self):
        guest = make_user('convidado', role=User.ROLE_GUEST)
        self.client.force_login(guest)
        response = self.client.post(self.list_url, {'title': 'A', 'description': 'a'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self._error(response)['code'], 'forbidden')

    def test_comment(self):
        url = reverse('api:ticket-comments', args=[self.ticket.pk])
        response = self.client.post(url, {'content': 'Aguardando peça'})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['content'], 'Aguardando peça')

        response = self.client.post(url, {'content': ''})
        self.assertEqual(self._error(response)['code'], 'missing_field')

    def test_stats_and_notifications(self):
        response = self.client.get(reverse('api:ticket-stats'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['total'], 1)

        response = self.client.get(reverse('api:ticket-notifications'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), [])

    def test_team_members(self):
        response = self.client.get(reverse('api:team-member-list'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([m['name'] for m in response.json()], ['Budi'])


class ActivityApiTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('budi', first_name='Budi')
        self.ticket = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})
        self.url = reverse('api:ticket-activities', args=[self.ticket.pk])
        self.client.force_login(self.user)

    def test_face_photo_required(self):
        response = self.client.post(self.url, {'notes': 'x', 'new_status': 'closed'})
        self.assertEqual(response.status_code, 400)
        error = response.json()['error']
        self.assertEqual(error['code'], 'face_photo_required')
        self.assertEqual(error['fields'], ['face_photo'])
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.status, Ticket.STATUS_OPEN)

    def test_invalid_status(self):
        response = self.client.post(self.url, {'notes': 'x', 'new_status': 'waiting', 'face_photo': jpeg_upload()})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_status')

    def test_not_an_image(self):
        from django.core.files.uploadedfile import SimpleUploadedFile
        fake = SimpleUploadedFile('face.jpg', b'nao sou imagem', content_type='image/jpeg')
        response = self.client.post(self.url, {'notes': 'x', 'new_status': 'closed', 'face_photo': fake})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_image')
        self.assertFalse(ActivityLog.objects.exists())

    def test_record_with_camera_snapshot(self):
        response = self.client.post(self.url, {
            'notes': 'Trocado o conector',
            'new_status': 'resolved',
            'face_photo_data': jpeg_data_url(),
            'client_token': 'tok-1',
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response['X-RateLimit-Limit'], '120')
        body = response.json()
        self.assertEqual(body['activity']['new_status'], 'resolved')
        self.assertEqual(body['ticket']['status'], 'resolved')
        self.assertEqual(len(body['ticket']['activity_logs']), 1)
        self.assertEqual(body['ticket']['handler_history'][0]['handler_name'], 'Budi')

    def test_resubmission_returns_original(self):
        payload = {'notes': 'x', 'new_status': 'in_progress', 'face_photo_data': jpeg_data_url(), 'client_token': 'tok-2'}
        first = self.client.post(self.url, payload)
        second = self.client.post(self.url, payload)
        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()['activity']['id'], second.json()['activity']['id'])
        self.assertEqual(ActivityLog.objects.count(), 1)

    def test_invalid_snapshot(self):
        response = self.client.post(self.url, {'notes': 'x', 'new_status': 'closed', 'face_photo_data': 'data:text/plain;base64,AAAA'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_image')


class OverdueApiTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('budi')
        self.admin = make_user('chefe', role=User.ROLE_ADMIN)
        self.ticket = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})
        self.url = reverse('api:ticket-overdue', args=[self.ticket.pk])

    def _patch(self, payload):
        return self.client.patch(self.url, data=json.dumps(payload), content_type='application/json')

    def test_non_admin_forbidden(self):
        self.client.force_login(self.user)
        response = self._patch({'overdue_hours': 2})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['error']['code'], 'forbidden')
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.overdue_hours, 24)

    def test_admin_updates(self):
        self.client.force_login(self.admin)
        response = self._patch({'overdue_hours': 2, 'overdue_enabled': False})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['overdue_hours'], 2)
        self.assertFalse(body['overdue_enabled'])
        self.assertEqual(body['overdue']['threshold_label'], '')

    def test_invalid_hours(self):
        self.client.force_login(self.admin)
        response = self._patch({'overdue_hours': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_overdue_hours')

    def test_form_patch_keeps_enabled_flag(self):
        """PATCH em formulário só com o limite não desliga o controle de atraso"""
        self.client.force_login(self.admin)
        response = self.client.patch(
            self.url, data=urlencode({'overdue_hours': '48'}),
            content_type='application/x-www-form-urlencoded',
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['overdue_enabled'])
        self.ticket.refresh_from_db()
        self.assertEqual(self.ticket.overdue_hours, 48)
        self.assertTrue(self.ticket.overdue_enabled)

    def test_form_patch_disables_explicitly(self):
        self.client.force_login(self.admin)
        response = self.client.patch(
            self.url, data=urlencode({'overdue_enabled': 'false'}),
            content_type='application/x-www-form-urlencoded',
        )
        self.assertEqual(response.status_code, 200)
        self.ticket.refresh_from_db()
        self.assertFalse(self.ticket.overdue_enabled)
        self.assertEqual(self.ticket.overdue_hours, 24)


class EscalationApiTest(MediaTestCase):

    def setUp(self):
        super().setUp()
        self.user = make_user('budi', first_name='Budi')
        self.rina = make_user('rina', first_name='Rina', team_type=User.TEAM_SERVICES)
        self.services_member = TeamMember.objects.get(user=self.rina)
        self.ticket = services.create_ticket(self.user, {'title': 'A', 'description': 'a'})
        self.url = reverse('api:ticket-activities', args=[self.ticket.pk])
        self.client.force_login(self.user)

    def test_escalate_with_report(self):
        response = self.client.post(self.url, {
            'notes': 'Precisa de visita técnica',
            'new_status': 'in_progress',
            'face_photo': jpeg_upload(),
            'report_file': pdf_upload(),
            'assign_to_services': 'true',
            'services_assignee': self.services_member.pk,
        })
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body['activity']['assigned_to_services'])
        self.assertEqual(body['activity']['file_name'], 'laporan.pdf')
        self.assertTrue(body['activity']['file_url'].startswith('/media/reports/'))
        self.assertEqual(body['ticket']['current_team'], 'services')
        self.assertEqual(body['ticket']['services_status'], 'open')
        self.assertEqual(body['ticket']['status'], 'in_progress')

    def test_escalate_without_assignee(self):
        response = self.client.post(self.url, {
            'notes': 'x', 'new_status': 'in_progress', 'face_photo': jpeg_upload(),
            'assign_to_services': 'true',
        })
        self.assertEqual(response.status_code, 400)
        error = response.json()['error']
        self.assertEqual(error['code'], 'missing_field')
        self.assertEqual(error['fields'], ['services_assignee'])
        self.assertFalse(ActivityLog.objects.exists())

    def test_escalate_to_pts_member(self):
        pts_member = TeamMember.objects.get(user=self.user)
        response = self.client.post(self.url, {
            'notes': 'x', 'new_status': 'in_progress', 'face_photo': jpeg_upload(),
            'assign_to_services': 'true', 'services_assignee': pts_member.pk,
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_assignee')

    def test_report_must_be_pdf(self):
        response = self.client.post(self.url, {
            'notes': 'x', 'new_status': 'in_progress', 'face_photo': jpeg_upload(),
            'report_file': jpeg_upload('laporan.pdf'),
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error']['code'], 'invalid_file')
        self.assertFalse(ActivityLog.objects.exists())

    def test_services_notifications_show_services_status(self):
        services.record_activity(self.ticket, self.user, {
            'notes': 'x', 'new_status': 'in_progress',
            'assign_to_services': True, 'services_assignee': self.services_member,
        }, face_photo=jpeg_upload())
        self.client.force_login(self.rina)
        response = self.client.get(reverse('api:ticket-notifications'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]['status'], 'open')
