"""
Test suite for the core module
Tests: login/session, profile and avatar, passwords, user administration, change feed
"""
import io
import shutil
import tempfile

from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from PIL import Image
from rest_framework import status
from rest_framework.test import APIClient
from backoffice.core.models import User
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient

STRONG_PASSWORD = 'Caneta-Azul-2024!'


def make_image_file(name='avatar.png', size=(16, 16), image_format='PNG'):
    buffer = io.BytesIO()
    Image.new('RGB', size, color=(200, 30, 30)).save(buffer, image_format)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type=f'image/{image_format.lower()}')


class UserModelTests(TestCase):
    """Test User model helpers"""

    def test_display_name_falls_back_to_email(self):
        user = TestDataFactory.create_user(email='maria.silva@papelaria.com', name='')
        self.assertEqual(user.display_name, 'maria.silva')

    def test_display_name_uses_name(self):
        user = TestDataFactory.create_user(name='Maria Silva')
        self.assertEqual(user.display_name, 'Maria Silva')
        self.assertEqual(str(user), 'Maria Silva')

    def test_superuser_acts_as_administrator(self):
        user = TestDataFactory.create_user(is_superuser=True)
        self.assertEqual(user.role, User.ROLE_EMPLOYEE)
        self.assertEqual(user.effective_role, User.ROLE_ADMINISTRATOR)
        self.assertTrue(user.is_administrator)

    def test_manager_is_manager_or_above(self):
        manager = TestDataFactory.create_manager()
        employee = TestDataFactory.create_user()
        self.assertTrue(manager.is_manager_or_above)
        self.assertFalse(manager.is_administrator)
        self.assertFalse(employee.is_manager_or_above)

    def test_username_defaults_to_email(self):
        user = User.objects.create_user('ana@test.com', password=STRONG_PASSWORD)
        self.assertEqual(user.username, 'ana@test.com')


class AuthAPITests(TestCase):
    """Test login, refresh, logout and session state"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='login@test.com', password=STRONG_PASSWORD)
        self.client = AuthenticatedAPIClient()

    def test_login_with_email(self):
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com', 'password': STRONG_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'login@test.com')

    def test_login_wrong_password(self):
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com', 'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive_user_rejected(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com', 'password': STRONG_PASSWORD
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_blacklists_refresh_token(self):
        tokens = self.client.post('/api/v1/auth/login/', {
            'email': 'login@test.com', 'password': STRONG_PASSWORD
        }, format='json').data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post('/api/v1/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_205_RESET_CONTENT)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_session_unauthenticated_without_token(self):
        response = APIClient().get('/api/v1/auth/session/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'state': 'unauthenticated'})

    def test_session_unauthenticated_with_invalid_token(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = client.get('/api/v1/auth/session/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['state'], 'unauthenticated')

    def test_session_authenticated_includes_profile(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/session/')
        self.assertEqual(response.data['state'], 'authenticated')
        self.assertEqual(response.data['profile']['email'], 'login@test.com')
        self.assertEqual(response.data['profile']['role'], User.ROLE_EMPLOYEE)

    def test_protected_endpoint_requires_token(self):
        response = APIClient().get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileAPITests(TestCase):
    """Test the current user's profile, avatar and password"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.user = TestDataFactory.create_user(email='perfil@test.com', password=STRONG_PASSWORD, name='')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_get_me(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['display_name'], 'perfil')
        self.assertIsNone(response.data['avatar_url'])

    def test_update_me(self):
        response = self.client.patch('/api/v1/auth/me/', {
            'name': 'Paula', 'phone': '11999990000', 'bio': 'Caixa'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Paula')
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, '11999990000')

    def test_update_me_cannot_change_role(self):
        self.client.patch('/api/v1/auth/me/', {'role': User.ROLE_ADMINISTRATOR}, format='json')
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_EMPLOYEE)

    def test_upload_avatar(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/v1/auth/me/avatar/', {'avatar': make_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        url = response.data['avatar_url']
        self.assertIn(f'avatars/{self.user.id}/avatar.png', url)
        self.assertIn('?v=', url)

    def test_replace_avatar_keeps_key(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            self.client.post('/api/v1/auth/me/avatar/', {'avatar': make_image_file()}, format='multipart')
            response = self.client.post('/api/v1/auth/me/avatar/', {'avatar': make_image_file('other.png')}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar.name, f'avatars/{self.user.id}/avatar.png')

    def test_upload_non_image_rejected(self):
        bogus = SimpleUploadedFile('avatar.png', b'not an image', content_type='image/png')
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/v1/auth/me/avatar/', {'avatar': bogus}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_avatar(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            self.client.post('/api/v1/auth/me/avatar/', {'avatar': make_image_file()}, format='multipart')
            response = self.client.delete('/api/v1/auth/me/avatar/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['avatar_url'])

    def test_change_password(self):
        response = self.client.post('/api/v1/auth/password/change/', {
            'old_password': STRONG_PASSWORD, 'new_password': 'Lapis-Verde-2025!'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Lapis-Verde-2025!'))

    def test_change_password_wrong_current(self):
        response = self.client.post('/api/v1/auth/password/change/', {
            'old_password': 'wrong', 'new_password': 'Lapis-Verde-2025!'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('old_password', response.data)


class PasswordResetAPITests(TestCase):
    """Test password reset flow"""

    def setUp(self):
        self.user = TestDataFactory.create_user(email='reset@test.com', password=STRONG_PASSWORD)
        self.client = APIClient()

    def test_reset_sends_mail(self):
        response = self.client.post('/api/v1/auth/password/reset/', {'email': 'reset@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['reset@test.com'])

    def test_reset_unknown_email_same_answer(self):
        response = self.client.post('/api/v1/auth/password/reset/', {'email': 'nobody@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(mail.outbox), 0)

    def test_reset_confirm(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        token = default_token_generator.make_token(self.user)
        response = self.client.post('/api/v1/auth/password/reset/confirm/', {
            'uid': uid, 'token': token, 'new_password': 'Borracha-Branca-99'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Borracha-Branca-99'))

    def test_reset_confirm_bad_token(self):
        uid = urlsafe_base64_encode(force_bytes(self.user.pk))
        response = self.client.post('/api/v1/auth/password/reset/confirm/', {
            'uid': uid, 'token': 'bad-token', 'new_password': 'Borracha-Branca-99'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserAdministrationAPITests(TestCase):
    """Test role-gated user administration"""

    def setUp(self):
        self.admin = TestDataFactory.create_administrator(name='Admin')
        self.employee = TestDataFactory.create_user(name='Funcionario')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_users(self):
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_employee_cannot_list_users(self):
        self.client.authenticate_user(self.employee)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_superuser_can_list_users(self):
        root = TestDataFactory.create_user(is_superuser=True)
        self.client.authenticate_user(root)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_create_user(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Novo Gerente',
            'email': 'gerente@test.com',
            'password': STRONG_PASSWORD,
            'role': User.ROLE_MANAGER,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='gerente@test.com')
        self.assertEqual(user.role, User.ROLE_MANAGER)
        self.assertTrue(user.check_password(STRONG_PASSWORD))

    def test_create_user_defaults_to_employee(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Novo', 'email': 'novo@test.com', 'password': STRONG_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], User.ROLE_EMPLOYEE)

    def test_create_administrator_rejected(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Outro Admin', 'email': 'admin2@test.com',
            'password': STRONG_PASSWORD, 'role': User.ROLE_ADMINISTRATOR,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='admin2@test.com').exists())

    def test_create_user_duplicate_email(self):
        response = self.client.post('/api/v1/users/', {
            'name': 'Dup', 'email': self.employee.email, 'password': STRONG_PASSWORD,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_role(self):
        response = self.client.patch(f'/api/v1/users/{self.employee.id}/role/', {
            'role': User.ROLE_MANAGER
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.employee.refresh_from_db()
        self.assertEqual(self.employee.role, User.ROLE_MANAGER)

    def test_cannot_change_own_role(self):
        response = self.client.patch(f'/api/v1/users/{self.admin.id}/role/', {
            'role': User.ROLE_EMPLOYEE
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn('error', response.data)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, User.ROLE_ADMINISTRATOR)

    def test_cannot_change_administrator_role(self):
        other_admin = TestDataFactory.create_administrator()
        response = self.client.patch(f'/api/v1/users/{other_admin.id}/role/', {
            'role': User.ROLE_EMPLOYEE
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        other_admin.refresh_from_db()
        self.assertEqual(other_admin.role, User.ROLE_ADMINISTRATOR)

    def test_cannot_assign_administrator(self):
        response = self.client.patch(f'/api/v1/users/{self.employee.id}/role/', {
            'role': User.ROLE_ADMINISTRATOR
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.employee.refresh_from_db()
        self.assertEqual(self.employee.role, User.ROLE_EMPLOYEE)

    def test_manager_cannot_change_roles(self):
        manager = TestDataFactory.create_manager()
        self.client.authenticate_user(manager)
        response = self.client.patch(f'/api/v1/users/{self.employee.id}/role/', {
            'role': User.ROLE_MANAGER
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ChangeFeedAPITests(TestCase):
    """Test collection change versions"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_version_moves_after_write(self):
        before = self.client.get('/api/v1/changes/?collections=customers').data['customers']
        self.client.post('/api/v1/customers/', {'name': 'Ana'}, format='json')
        after = self.client.get('/api/v1/changes/?collections=customers').data['customers']
        self.assertGreater(after, before)

    def test_all_collections_by_default(self):
        response = self.client.get('/api/v1/changes/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('orders', response.data)
        self.assertIn('stock', response.data)

    def test_unknown_collection(self):
        response = self.client.get('/api/v1/changes/?collections=invoices')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
