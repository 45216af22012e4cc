"""
Testes automatizados do portal: usuários, menu, sessão e contas
"""
import copy
import tempfile
from datetime import timedelta
from pathlib import Path
from unittest import mock

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.test import SimpleTestCase, TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from portal_suporte.monitoring import attach_file_handlers, init_sentry

from .exceptions import MissingFieldError, FacePhotoRequiredError, PortalPermissionError
from .forms import PortalUserForm
from .menu import (
    EmbeddedFrame, ExternalLink, InternalRoute, build_entry, build_menu,
    get_menu, visible_sections,
)
from .session import LOGIN_AT_KEY

User = get_user_model()

TEST_MENU = [
    {
        'key': 'tools',
        'title': 'Tools',
        'items': [
            {'kind': 'external', 'name': 'Docs', 'url': 'https://example.com/docs'},
            {'kind': 'embed', 'name': 'Sheet', 'url': 'https://example.com/sheet'},
            {'kind': 'internal', 'name': 'Tickets', 'route': 'ticketing:ticket_list'},
        ],
    },
    {
        'key': 'reports',
        'title': 'Reports',
        'items': [
            {'kind': 'external', 'name': 'Drive', 'url': 'https://example.com/drive'},
        ],
    },
]


class CustomUserModelTest(TestCase):
    """Testes para o modelo de usuário do portal"""

    def test_guest_team_type_forced(self):
        user = User.objects.create_user(username='guest', password='x', role=User.ROLE_GUEST, team_type=User.TEAM_PTS)
        self.assertEqual(user.team_type, User.TEAM_GUEST)
        self.assertTrue(user.is_guest)

    def test_admin_becomes_staff(self):
        user = User.objects.create_user(username='boss', password='x', role=User.ROLE_ADMIN)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_portal_admin)
        self.assertEqual(user.team_type, User.TEAM_PTS)

    def test_team_user_cannot_be_guest_team(self):
        user = User.objects.create_user(username='eng', password='x', role=User.ROLE_TEAM, team_type=User.TEAM_GUEST)
        self.assertEqual(user.team_type, User.TEAM_PTS)

    def test_can_see_menu(self):
        """Admins veem tudo; os demais apenas os menus liberados"""
        user = User.objects.create_user(username='eng', password='x', allowed_menus=['daily-report'])
        admin = User.objects.create_user(username='boss', password='x', role=User.ROLE_ADMIN)
        self.assertTrue(user.can_see_menu('daily-report'))
        self.assertFalse(user.can_see_menu('database-pts'))
        self.assertTrue(admin.can_see_menu('database-pts'))

    def test_full_name_falls_back_to_username(self):
        user = User.objects.create_user(username='semnome', password='x')
        self.assertEqual(user.get_full_name(), 'semnome')
        self.assertEqual(str(user), 'semnome')
        user.first_name = 'Budi'
        user.last_name = 'Santoso'
        self.assertEqual(user.get_full_name(), 'Budi Santoso')


class MenuTest(TestCase):
    """Testes da tabela de navegação"""

    def test_entry_variants(self):
        self.assertIsInstance(build_entry({'kind': 'external', 'name': 'A', 'url': 'https://a'}), ExternalLink)
        self.assertIsInstance(build_entry({'kind': 'embed', 'name': 'B', 'url': 'https://b'}), EmbeddedFrame)
        self.assertIsInstance(build_entry({'kind': 'internal', 'name': 'C', 'route': 'dashboard'}), InternalRoute)

    def test_unknown_kind_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            build_entry({'kind': 'popup', 'name': 'X', 'url': 'https://x'})

    def test_missing_url_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            build_entry({'kind': 'external', 'name': 'X'})

    def test_duplicate_keys_rejected(self):
        with self.assertRaises(ImproperlyConfigured):
            build_menu([{'key': 'a', 'title': 'A'}, {'key': 'a', 'title': 'B'}])

    def test_default_menu_sections(self):
        keys = [section.key for section in get_menu()]
        self.assertIn('ticket-troubleshooting', keys)
        self.assertEqual(len(keys), len(set(keys)))

    @override_settings(PORTAL_MENU=TEST_MENU)
    def test_visible_sections(self):
        user = User.objects.create_user(username='eng', password='x', allowed_menus=['reports'])
        admin = User.objects.create_user(username='boss', password='x', role=User.ROLE_ADMIN)
        self.assertEqual([s.key for s in visible_sections(user)], ['reports'])
        self.assertEqual([s.key for s in visible_sections(admin)], ['tools', 'reports'])


class PortalErrorTest(TestCase):
    def test_missing_field_lists_fields(self):
        error = MissingFieldError(['title', 'description'])
        payload = error.as_dict()
        self.assertEqual(payload['error']['code'], 'missing_field')
        self.assertEqual(payload['error']['fields'], ['title', 'description'])

    def test_face_photo_required(self):
        error = FacePhotoRequiredError()
        self.assertEqual(error.code, 'face_photo_required')
        self.assertEqual(error.fields, ['face_photo'])

    def test_permission_status(self):
        self.assertEqual(PortalPermissionError().status_code, 403)


class LoginViewTest(TestCase):
    """Testes para views de login e logout"""

    def setUp(self):
        cache.clear()
        self.client = Client()
        self.user = User.objects.create_user(
            username='testuser', password='testpass123', first_name='Test'
        )

    def test_login_page(self):
        response = self.client.get(reverse('login'))
        self.assertEqual(response.status_code, 200)

    def test_login_success(self):
        """Teste de login bem-sucedido"""
        response = self.client.post(reverse('login'), {'username': 'testuser', 'password': 'testpass123'})
        self.assertRedirects(response, reverse('dashboard'))
        self.assertIn(LOGIN_AT_KEY, self.client.session)

    def test_login_respects_safe_next(self):
        response = self.client.post(
            reverse('login'),
            {'username': 'testuser', 'password': 'testpass123', 'next': reverse('password_change')},
        )
        self.assertRedirects(response, reverse('password_change'))

    def test_login_ignores_external_next(self):
        response = self.client.post(
            reverse('login'),
            {'username': 'testuser', 'password': 'testpass123', 'next': 'https://evil.example.com/'},
        )
        self.assertRedirects(response, reverse('dashboard'))

    def test_login_failure(self):
        """Teste de login com credenciais inválidas"""
        response = self.client.post(reverse('login'), {'username': 'testuser', 'password': 'errada'})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Credenciais inválidas.')
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_inactive_user_cannot_login(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post(reverse('login'), {'username': 'testuser', 'password': 'testpass123'})
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_logout(self):
        self.client.post(reverse('login'), {'username': 'testuser', 'password': 'testpass123'})
        response = self.client.get(reverse('logout'))
        self.assertRedirects(response, reverse('login'))
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, 302)

    def test_login_rate_limited(self):
        for _ in range(20):
            self.client.post(reverse('login'), {'username': 'testuser', 'password': 'errada'})
        response = self.client.post(reverse('login'), {'username': 'testuser', 'password': 'errada'})
        self.assertEqual(response.status_code, 429)
        self.assertGreater(int(response['Retry-After']), 0)


class SessionExpiryTest(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(username='testuser', password='testpass123')
        self.client.post(reverse('login'), {'username': 'testuser', 'password': 'testpass123'})

    def _age_session(self, hours):
        session = self.client.session
        session[LOGIN_AT_KEY] = (timezone.now() - timedelta(hours=hours)).isoformat()
        session.save()

    def test_session_valid_before_limit(self):
        self._age_session(5)
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, 200)

    def test_session_expires_after_six_hours(self):
        self._age_session(6)
        response = self.client.get(reverse('dashboard'))
        self.assertRedirects(response, reverse('login'))
        self.assertNotIn('_auth_user_id', self.client.session)


@override_settings(PORTAL_MENU=TEST_MENU)
class DashboardTest(TestCase):
    """Navegação do dashboard despachada pelo tipo da entrada"""

    def setUp(self):
        self.user = User.objects.create_user(username='eng', password='x', allowed_menus=['tools'])
        self.client.force_login(self.user)

    def test_dashboard_lists_visible_sections(self):
        response = self.client.get(reverse('dashboard'))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Tools')
        self.assertNotContains(response, 'Reports')

    def test_external_link_redirects(self):
        response = self.client.get(reverse('dashboard_open', args=['tools', 0]))
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], 'https://example.com/docs')

    def test_embedded_frame_renders_iframe(self):
        response = self.client.get(reverse('dashboard_open', args=['tools', 1]))
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '<iframe src="https://example.com/sheet"')

    def test_internal_route_redirects(self):
        response = self.client.get(reverse('dashboard_open', args=['tools', 2]))
        self.assertRedirects(response, reverse('ticketing:ticket_list'), fetch_redirect_response=False)

    def test_hidden_section_forbidden(self):
        response = self.client.get(reverse('dashboard_open', args=['reports', 0]))
        self.assertEqual(response.status_code, 403)

    def test_unknown_section_not_found(self):
        response = self.client.get(reverse('dashboard_open', args=['nada', 0]))
        self.assertEqual(response.status_code, 404)

    def test_entry_index_out_of_range(self):
        response = self.client.get(reverse('dashboard_open', args=['tools', 9]))
        self.assertEqual(response.status_code, 404)


class AccountManagementTest(TestCase):
    """Gestão de contas restrita a administradores"""

    def setUp(self):
        self.admin = User.objects.create_user(username='boss', password='x', role=User.ROLE_ADMIN)
        self.user = User.objects.create_user(username='eng', password='x')

    def test_non_admin_redirected(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse('account_list'))
        self.assertEqual(response.status_code, 302)

    def test_list_accounts(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('account_list'), {'q': 'eng'})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'eng')

    def test_create_account_with_menus(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('account_create'), {
            'username': 'novo',
            'first_name': 'Novo',
            'last_name': 'Usuário',
            'email': 'novo@example.com',
            'role': User.ROLE_TEAM,
            'team_type': User.TEAM_SERVICES,
            'allowed_menus': ['daily-report', 'ticket-troubleshooting'],
            'is_active': 'on',
            'password1': 'SenhaForte#2024',
            'password2': 'SenhaForte#2024',
        })
        self.assertRedirects(response, reverse('account_list'))
        created = User.objects.get(username='novo')
        self.assertEqual(created.allowed_menus, ['daily-report', 'ticket-troubleshooting'])
        self.assertEqual(created.team_type, User.TEAM_SERVICES)
        self.assertTrue(created.check_password('SenhaForte#2024'))

    def test_form_rejects_unknown_menu(self):
        form = PortalUserForm(data={
            'username': 'x', 'first_name': 'X', 'role': User.ROLE_TEAM, 'team_type': User.TEAM_PTS,
            'allowed_menus': ['inexistente'], 'password1': 'SenhaForte#2024', 'password2': 'SenhaForte#2024',
        })
        self.assertFalse(form.is_valid())
        self.assertIn('allowed_menus', form.errors)

    def test_edit_account(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('account_edit', args=[self.user.id]), {
            'username': 'eng',
            'first_name': 'Eng',
            'last_name': '',
            'email': '',
            'role': User.ROLE_GUEST,
            'team_type': User.TEAM_PTS,
            'allowed_menus': ['ticket-troubleshooting'],
            'is_active': 'on',
        })
        self.assertRedirects(response, reverse('account_list'))
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_GUEST)
        self.assertEqual(self.user.team_type, User.TEAM_GUEST)

    def test_delete_account(self):
        self.client.force_login(self.admin)
        response = self.client.post(reverse('account_delete', args=[self.user.id]))
        self.assertRedirects(response, reverse('account_list'))
        self.assertFalse(User.objects.filter(id=self.user.id).exists())

    def test_cannot_delete_self_or_superuser(self):
        root = User.objects.create_superuser(username='root', password='x')
        self.client.force_login(self.admin)
        self.client.post(reverse('account_delete', args=[self.admin.id]))
        self.client.post(reverse('account_delete', args=[root.id]))
        self.assertTrue(User.objects.filter(id=self.admin.id).exists())
        self.assertTrue(User.objects.filter(id=root.id).exists())

    def test_delete_requires_post(self):
        self.client.force_login(self.admin)
        response = self.client.get(reverse('account_delete', args=[self.user.id]))
        self.assertEqual(response.status_code, 405)


class PasswordChangeTest(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='eng', password='antiga#123')
        self.client.force_login(self.user)

    def test_wrong_current_password(self):
        response = self.client.post(reverse('password_change'), {
            'old_password': 'errada',
            'new_password1': 'NovaSenha#2024',
            'new_password2': 'NovaSenha#2024',
        })
        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('antiga#123'))

    def test_password_changed_and_session_kept(self):
        response = self.client.post(reverse('password_change'), {
            'old_password': 'antiga#123',
            'new_password1': 'NovaSenha#2024',
            'new_password2': 'NovaSenha#2024',
        })
        self.assertRedirects(response, reverse('dashboard'))
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('NovaSenha#2024'))
        self.assertEqual(self.client.get(reverse('dashboard')).status_code, 200)


class SessionApiTest(TestCase):
    """API de sessão: erros no formato {"error": {"code", ...}}"""

    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(
            username='eng', password='testpass123', allowed_menus=['ticket-troubleshooting']
        )
        self.url = reverse('api_session')

    def test_invalid_credentials(self):
        response = self.client.post(self.url, {'username': 'eng', 'password': 'errada'}, content_type='application/json')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error']['code'], 'invalid_credentials')

    def test_missing_fields(self):
        response = self.client.post(self.url, {'username': 'eng'}, content_type='application/json')
        self.assertEqual(response.status_code, 400)
        body = response.json()['error']
        self.assertEqual(body['code'], 'missing_field')
        self.assertEqual(body['fields'], ['password'])

    def test_login_and_get_session(self):
        response = self.client.post(self.url, {'username': 'eng', 'password': 'testpass123'}, content_type='application/json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['menus'], ['ticket-troubleshooting'])
        self.assertIsNotNone(response.json()['expires_at'])

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['username'], 'eng')

    def test_unauthenticated_get(self):
        response = self.client.get(self.url)
        self.assertIn(response.status_code, (401, 403))
        self.assertEqual(response.json()['error']['code'], 'not_authenticated')

    def test_logout(self):
        self.client.force_login(self.user)
        response = self.client.delete(self.url)
        self.assertEqual(response.status_code, 204)
        self.assertNotIn('_auth_user_id', self.client.session)


class MonitoringTest(SimpleTestCase):
    """Logs em arquivo e Sentry usados em produção"""

    def test_file_handlers_attached_to_security_and_audit(self):
        config = copy.deepcopy(settings.LOGGING)
        with tempfile.TemporaryDirectory() as tmpdir:
            attach_file_handlers(config, Path(tmpdir))
            attach_file_handlers(config, Path(tmpdir))
        loggers = config['loggers']
        self.assertIn('security_file', loggers['security']['handlers'])
        self.assertIn('audit_file', loggers['audit']['handlers'])
        self.assertEqual(loggers['audit']['handlers'].count('audit_file'), 1)
        self.assertEqual(loggers['security']['handlers'].count('security_file'), 1)
        self.assertIn('file', loggers['ticketing']['handlers'])
        self.assertEqual(config['handlers']['audit_file']['formatter'], 'audit')

    def test_sentry_off_without_dsn(self):
        with mock.patch('sentry_sdk.init') as init:
            self.assertFalse(init_sentry(None))
            self.assertFalse(init_sentry(''))
        init.assert_not_called()

    def test_sentry_on_with_dsn(self):
        with mock.patch('sentry_sdk.init') as init:
            self.assertTrue(init_sentry('https://chave@sentry.example.com/1', environment='staging'))
        kwargs = init.call_args.kwargs
        self.assertEqual(kwargs['dsn'], 'https://chave@sentry.example.com/1')
        self.assertEqual(kwargs['environment'], 'staging')
        self.assertFalse(kwargs['send_default_pii'])
        self.assertEqual(
            {type(integration).__name__ for integration in kwargs['integrations']},
            {'DjangoIntegration', 'LoggingIntegration'},
        )
