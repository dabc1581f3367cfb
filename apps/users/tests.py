from django.urls import reverse
from rest_framework.test import APITestCase

from .models import User


class AuthTestCase(APITestCase):
    def setUp(self):
        self.student = User.objects.create_user(
            username='cse1', password='pass12345', role='student', branch='CSE', year=1,
            first_name='Ravi', last_name='Kumar'
        )

    def test_login_returns_tokens_and_profile(self):
        response = self.client.post(reverse('users:login'), {'username': 'cse1', 'password': 'pass12345'})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['success'])
        self.assertIn('access_token', response.data)
        self.assertEqual(response.data['user']['branch'], 'CSE')
        self.assertEqual(response.data['user']['full_name'], 'Ravi Kumar')

    def test_login_rejects_bad_credentials(self):
        response = self.client.post(reverse('users:login'), {'username': 'cse1', 'password': 'wrong'})
        self.assertEqual(response.status_code, 401)

        response = self.client.post(reverse('users:login'), {'username': 'cse1'})
        self.assertEqual(response.status_code, 400)

    def test_bearer_token_authenticates_profile(self):
        login = self.client.post(reverse('users:login'), {'username': 'cse1', 'password': 'pass12345'})
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access_token']}")

        response = self.client.get(reverse('users:profile'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['user']['role'], 'student')
        self.assertEqual(response.data['user']['year'], 1)

    def test_logout_blacklists_refresh_token(self):
        login = self.client.post(reverse('users:login'), {'username': 'cse1', 'password': 'pass12345'})
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access_token']}")

        response = self.client.post(reverse('users:logout'), {'refresh_token': login.data['refresh_token']})
        self.assertEqual(response.status_code, 200)

        response = self.client.post(reverse('token_refresh'), {'refresh': login.data['refresh_token']})
        self.assertEqual(response.status_code, 401)
