from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.management import call_command
from django.test import RequestFactory, TestCase

from .audit import log_audit_event
from .decorators import api_role_required, has_role
from .models import AuditLog


class RoleGateTests(TestCase):
    def setUp(self):
        self.user_model = get_user_model()
        self.factory = RequestFactory()
        self.teacher = self.user_model.objects.create_user(
            username='teacher1',
            password='pass12345',
            role='teacher',
        )
        self.school_admin = self.user_model.objects.create_user(
            username='schooladmin1',
            password='pass12345',
            role='schooladmin',
        )

        @api_role_required(['schooladmin'])
        def admin_only(request):
            from django.http import JsonResponse
            return JsonResponse({'ok': True})

        self.view = admin_only

    def _request(self, user):
        request = self.factory.post('/academic-years/start-new/')
        request.user = user
        return request

    def test_anonymous_user_gets_401(self):
        response = self.view(self._request(AnonymousUser()))
        self.assertEqual(response.status_code, 401)

    def test_wrong_role_gets_403(self):
        response = self.view(self._request(self.teacher))
        self.assertEqual(response.status_code, 403)

    def test_allowed_role_reaches_view(self):
        response = self.view(self._request(self.school_admin))
        self.assertEqual(response.status_code, 200)

    def test_has_role(self):
        self.assertTrue(has_role(self.school_admin, ('superadmin', 'schooladmin')))
        self.assertFalse(has_role(self.teacher, ('superadmin', 'schooladmin')))
        self.assertFalse(has_role(AnonymousUser(), 'schooladmin'))
        self.assertFalse(has_role(None, 'schooladmin'))

    def test_superuser_is_always_superadmin(self):
        root = self.user_model.objects.create_superuser('root', 'root@example.com', 'pass12345')
        self.assertEqual(root.role, 'superadmin')


class AuditLogTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username='auditor',
            password='pass12345',
            role='schooladmin',
        )

    def test_event_without_request_is_recorded(self):
        log_audit_event(action='academic_year.transitioned', user=self.user, details='2025 -> 2026')
        entry = AuditLog.objects.get(action='academic_year.transitioned')
        self.assertEqual(entry.user, self.user)
        self.assertEqual(entry.method, '')
        self.assertIsNone(entry.ip_address)

    def test_request_details_are_recorded(self):
        request = RequestFactory().post('/academic-years/create/', REMOTE_ADDR='10.0.0.8')
        request.user = self.user
        log_audit_event(action='academic_year.planned', request=request, target=self.user)
        entry = AuditLog.objects.get(action='academic_year.planned')
        self.assertEqual(entry.method, 'POST')
        self.assertEqual(entry.path, '/academic-years/create/')
        self.assertEqual(entry.ip_address, '10.0.0.8')
        self.assertEqual(entry.target_model, 'User')

    def test_login_is_audited(self):
        self.client.login(username='auditor', password='pass12345')
        self.assertTrue(AuditLog.objects.filter(action='user.login', user=self.user).exists())


class MigrationStateTests(TestCase):
    def test_models_match_migrations(self):
        out = StringIO()
        try:
            call_command('makemigrations', '--check', '--dry-run', stdout=out)
        except SystemExit:
            self.fail(f"Models have changes not captured in migrations:\n{out.getvalue()}")
