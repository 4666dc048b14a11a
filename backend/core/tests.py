"""
Test suite for Core module
Tests: registration, login, logout, profile, addresses, user management, audit logs and helpers
"""
from django.core.cache import cache
from django.test import TestCase, RequestFactory
from rest_framework import status
from rest_framework.test import APIClient
from backend.core.cache_utils import (
    cache_set, invalidate_cache_pattern, make_cache_key, DASHBOARD_PREFIX,
)
from backend.core.models import User, Address, AuditLog
from backend.core.pagination import paginate_queryset
from backend.core.serializers import UserSerializer
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log, get_client_ip


class UserModelTests(TestCase):
    """Test User and Address model behaviour"""

    def test_email_lowercased(self):
        user = TestDataFactory.create_user(email='MixedCase@Test.com')
        self.assertEqual(user.email, 'mixedcase@test.com')

    def test_superuser_gets_admin_role(self):
        user = User.objects.create_superuser(email='root@test.com', password='testpass123', name='Root')
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.is_admin_user)

    def test_customer_is_not_admin(self):
        self.assertFalse(TestDataFactory.create_user().is_admin_user)

    def test_first_address_becomes_default(self):
        user = TestDataFactory.create_user()
        first = Address.objects.create(user=user, full_name='A', address_line1='1 St', city='C', state='S',
                                       postal_code='1', country='PK', phone='1')
        self.assertTrue(first.is_default)
        second = Address.objects.create(user=user, full_name='B', address_line1='2 St', city='C', state='S',
                                        postal_code='2', country='PK', phone='2', is_default=True)
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)


class AuthAPITests(TestCase):
    """Test authentication endpoints"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_health(self):
        response = self.client.get('/api/v1/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'OK')

    def test_register(self):
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'New@Test.com',
            'name': 'New User',
            'password': 'Str0ngPass!word',
            'password_confirm': 'Str0ngPass!word',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['email'], 'new@test.com')
        self.assertEqual(response.data['user']['role'], 'user')

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'new@test.com',
            'name': 'New User',
            'password': 'Str0ngPass!word',
            'password_confirm': 'Different!word1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_duplicate_email(self):
        TestDataFactory.create_user(email='taken@test.com')
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'TAKEN@test.com',
            'name': 'Someone',
            'password': 'Str0ngPass!word',
            'password_confirm': 'Str0ngPass!word',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)

    def test_register_ignores_role(self):
        response = self.client.post('/api/v1/auth/register/', {
            'email': 'sneaky@test.com',
            'name': 'Sneaky',
            'password': 'Str0ngPass!word',
            'password_confirm': 'Str0ngPass!word',
            'role': 'admin',
        }, format='json')
        self.assertEqual(response.data['user']['role'], 'user')

    def test_login(self):
        TestDataFactory.create_user(email='login@test.com', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'email': 'LOGIN@test.com', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['email'], 'login@test.com')

    def test_login_wrong_password(self):
        TestDataFactory.create_user(email='login@test.com', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'email': 'login@test.com', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_login_rejects_customer(self):
        TestDataFactory.create_user(email='customer@test.com', password='testpass123')
        response = self.client.post('/api/v1/admin/auth/login/', {'email': 'customer@test.com', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_login_and_verify(self):
        TestDataFactory.create_admin(email='boss@test.com', password='testpass123')
        response = self.client.post('/api/v1/admin/auth/login/', {'email': 'boss@test.com', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = self.client.get('/api/v1/admin/auth/verify/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])

    def test_logout_blacklists_refresh_token(self):
        TestDataFactory.create_user(email='out@test.com', password='testpass123')
        tokens = self.client.post('/api/v1/auth/login/', {'email': 'out@test.com', 'password': 'testpass123'}, format='json').data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post('/api/v1/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_requires_refresh(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.post('/api/v1/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProfileAPITests(TestCase):
    """Test profile and address book endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(password='testpass123')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_me(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], self.user.email)
        self.assertEqual(response.data['addresses'], [])

    def test_update_profile(self):
        response = self.client.patch('/api/v1/auth/profile/', {'name': 'Renamed', 'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, 'Renamed')
        self.assertEqual(self.user.role, User.ROLE_USER)

    def test_change_password(self):
        response = self.client.post('/api/v1/auth/change-password/', {
            'current_password': 'testpass123',
            'new_password': 'An0ther!Secret',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('An0ther!Secret'))

    def test_change_password_wrong_current(self):
        response = self.client.post('/api/v1/auth/change-password/', {
            'current_password': 'wrong',
            'new_password': 'An0ther!Secret',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_address_crud(self):
        payload = {
            'full_name': 'Home', 'address_line1': '1 Street', 'city': 'Lahore', 'state': 'Punjab',
            'postal_code': '54000', 'country': 'Pakistan', 'phone': '0300',
        }
        response = self.client.post('/api/v1/auth/addresses/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_default'])
        address_id = response.data['id']

        response = self.client.patch(f'/api/v1/auth/addresses/{address_id}/', {'city': 'Karachi'}, format='json')
        self.assertEqual(response.data['city'], 'Karachi')

        response = self.client.delete(f'/api/v1/auth/addresses/{address_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Address.objects.exists())

    def test_cannot_read_other_users_address(self):
        other = TestDataFactory.create_user()
        address = Address.objects.create(user=other, full_name='X', address_line1='1', city='C', state='S',
                                         postal_code='1', country='PK', phone='1')
        response = self.client.get(f'/api/v1/auth/addresses/{address.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class UserManagementAPITests(TestCase):
    """Test admin user management and audit logs"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_list_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_role_filter(self):
        TestDataFactory.create_user()
        response = self.client.get('/api/v1/users/?role=admin')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_create_admin_user_is_audited(self):
        response = self.client.post('/api/v1/users/', {
            'email': 'staff@test.com',
            'name': 'Staff',
            'password': 'Str0ngPass!word',
            'password_confirm': 'Str0ngPass!word',
            'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'admin')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User').exists())

    def test_create_invalid_role(self):
        response = self.client.post('/api/v1/users/', {'email': 'x@test.com', 'role': 'owner'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_user(self):
        user = TestDataFactory.create_user()
        response = self.client.delete(f'/api/v1/users/{user.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=user.id).exists())

    def test_audit_log_filters(self):
        create_audit_log(user=self.admin, action='update', model_name='Product', object_id=1)
        create_audit_log(user=self.admin, action='delete', model_name='Category', object_id=2)
        response = self.client.get('/api/v1/audit-logs/?model=Product')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], 'update')


class HelperTests(TestCase):
    """Test shared helpers"""

    def setUp(self):
        cache.clear()

    def test_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Product'))
        self.assertFalse(AuditLog.objects.exists())

    def test_client_ip_prefers_forwarded_for(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2', REMOTE_ADDR='127.0.0.1')
        self.assertEqual(get_client_ip(request), '10.0.0.1')

    def test_pagination(self):
        for _ in range(5):
            TestDataFactory.create_user()
        request = RequestFactory().get('/', {'page': 2, 'limit': 2})
        request.query_params = request.GET
        data = paginate_queryset(request, User.objects.order_by('id'), UserSerializer)
        self.assertEqual(data['count'], 5)
        self.assertEqual(len(data['results']), 2)
        self.assertEqual(data['next'], 3)
        self.assertEqual(data['previous'], 1)
        self.assertEqual(data['page_size'], 2)

    def test_invalidate_cache_pattern_without_redis(self):
        key = make_cache_key(DASHBOARD_PREFIX, 'dashboard')
        cache_set(DASHBOARD_PREFIX, key, {'value': 1}, 60)
        self.assertIsNotNone(cache.get(key))
        invalidate_cache_pattern(DASHBOARD_PREFIX)
        self.assertIsNone(cache.get(key))
