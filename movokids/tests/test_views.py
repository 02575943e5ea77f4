import json
from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from movokids.middleware import GUEST_COOKIE_NAME
from movokids.models import (
    ChildProfile, GroupSession, LearningDay, Quiz, QuizQuestion, SoloSessionRequest, SubscriptionType,
    UserGameAttempt,
)
from movokids.stripe_checkout import PaymentProviderError
from movokids.quizzes import PENDING_QUIZ_SESSION_KEY
from movokids.tests.helpers import PASSWORD, give_subscription, make_day, make_user


class AuthViewTests(TestCase):

    def test_auth_check(self):
        response = self.client.get(reverse('auth_check'))
        self.assertEqual(response.json(), {'authenticated': False, 'userId': None})

        user = make_user()
        self.client.force_login(user)
        response = self.client.get(reverse('auth_check'))
        self.assertEqual(response.json(), {'authenticated': True, 'userId': user.pk})

    def test_login_with_email(self):
        make_user('mum@example.com')
        response = self.client.post(reverse('login'), {'email': 'Mum@Example.com', 'password': PASSWORD})
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_login_ignores_offsite_next(self):
        make_user('mum@example.com')
        response = self.client.post(
            reverse('login') + '?next=https://evil.example/',
            {'email': 'mum@example.com', 'password': PASSWORD},
        )
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_bad_password(self):
        make_user('mum@example.com')
        response = self.client.post(reverse('login'), {'email': 'mum@example.com', 'password': 'nope'})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Invalid email or password')

    def test_logout(self):
        self.client.force_login(make_user())
        response = self.client.get(reverse('logout'))
        self.assertRedirects(response, reverse('home'), fetch_redirect_response=False)


class QuizAndSignupTests(TestCase):

    def setUp(self):
        quiz = Quiz.objects.create(title='Initial assessment')
        self.q1 = QuizQuestion.objects.create(quiz=quiz, question='Loses focus', category='Inattention', order=1)
        self.q2 = QuizQuestion.objects.create(quiz=quiz, question='Fidgets', category='Hyperactivity', order=2)

    def signup_data(self, email='new@example.com'):
        return {
            'email': email,
            'password1': PASSWORD,
            'password2': PASSWORD,
            'child_first_name': 'Yusuf',
            'parent_first_name': 'Amal',
            'parent_phone': '+201001234567',
        }

    def test_quiz_result_waits_for_signup(self):
        response = self.client.post(reverse('quiz'), {f'q_{self.q1.id}': '0', f'q_{self.q2.id}': '2'})
        self.assertRedirects(response, reverse('register'), fetch_redirect_response=False)
        self.assertEqual(self.client.session[PENDING_QUIZ_SESSION_KEY]['score'], 4)

        response = self.client.post(reverse('register'), self.signup_data())

        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)
        profile = ChildProfile.objects.get(user__email='new@example.com')
        self.assertEqual(profile.initial_quiz_score, 4)
        self.assertEqual(profile.inattention_score, 3)
        self.assertEqual(profile.hyperactivity_score, 1)
        self.assertEqual(profile.child_first_name, 'Yusuf')
        self.assertNotIn(PENDING_QUIZ_SESSION_KEY, self.client.session)

    def test_signed_in_quiz_goes_onto_profile(self):
        user = make_user()
        self.client.force_login(user)
        response = self.client.post(
            reverse('quiz'),
            data=json.dumps({'answers': {str(self.q1.id): 0, str(self.q2.id): 0}}),
            content_type='application/json',
        )
        self.assertEqual(response.json()['result']['score'], 6)
        user.profile.refresh_from_db()
        self.assertEqual(user.profile.initial_quiz_score, 6)

    def test_duplicate_email(self):
        make_user('new@example.com')
        response = self.client.post(reverse('register'), self.signup_data())
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'An account with this email already exists.')

    def test_quiz_page_lists_questions(self):
        response = self.client.get(reverse('quiz'))
        self.assertContains(response, 'Loses focus')
        self.assertContains(response, f'name="q_{self.q2.id}"')


class LearningPathViewTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.day = make_day(1, game_count=2)
        make_day(2, game_count=1)
        self.client.force_login(self.user)

    def post_attempt(self, **overrides):
        day_game = self.day.day_games.order_by('order_in_day').first()
        payload = {'learning_day_id': self.day.pk, 'game_id': day_game.game_id, 'is_correct': True,
                   'score': 85, 'time_taken_seconds': 30}
        payload.update(overrides)
        return self.client.post(reverse('record_attempt'), data=json.dumps(payload),
                                content_type='application/json')

    def test_path_needs_a_package(self):
        response = self.client.get(reverse('learning_path'))
        self.assertRedirects(response, reverse('pricing'), fetch_redirect_response=False)

    def test_attempt_needs_a_package(self):
        self.assertEqual(self.post_attempt().status_code, 403)

    def test_attempt_is_recorded(self):
        give_subscription(self.user)
        response = self.post_attempt()
        body = response.json()
        self.assertTrue(body['success'])
        self.assertEqual(body['attempt']['attempt_number'], 1)
        self.assertEqual(body['progress']['games_correct_count'], 1)

    def test_locked_day_rejects_attempts(self):
        give_subscription(self.user)
        day_two = LearningDay.objects.get(day_number=2)
        game_id = day_two.day_games.first().game_id
        response = self.post_attempt(learning_day_id=day_two.pk, game_id=game_id)
        self.assertEqual(response.status_code, 403)

    def test_locked_day_page_redirects(self):
        give_subscription(self.user)
        response = self.client.get(reverse('learning_day', args=[2]))
        self.assertRedirects(response, reverse('learning_path'), fetch_redirect_response=False)

    def test_path_page(self):
        give_subscription(self.user)
        response = self.client.get(reverse('learning_path'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.context['days']), 2)
        self.assertTrue(response.context['days'][0]['is_unlocked'])
        self.assertFalse(response.context['days'][1]['is_unlocked'])

    def test_stats_api_is_camel_case(self):
        response = self.client.get(reverse('learning_path_stats'))
        body = response.json()
        self.assertEqual(body['totalDays'], 2)
        self.assertEqual(body['completedDays'], 0)

    def test_api_needs_login(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse('learning_path_stats')).status_code, 401)

    def test_reset_day(self):
        give_subscription(self.user)
        self.post_attempt()

        response = self.client.post(reverse('reset_day', args=[1]))

        self.assertEqual(response.json(), {'success': True})
        self.assertFalse(UserGameAttempt.objects.filter(user=self.user).exists())

    def test_reset_needs_a_package(self):
        self.assertEqual(self.client.post(reverse('reset_day', args=[1])).status_code, 403)

    def test_locked_day_cannot_be_reset(self):
        give_subscription(self.user)
        self.assertEqual(self.client.post(reverse('reset_day', args=[2])).status_code, 403)

    def test_leaderboard_needs_login(self):
        game_id = self.day.day_games.first().game_id
        self.assertEqual(self.client.get(reverse('game_leaderboard', args=[game_id])).status_code, 200)
        self.client.logout()
        self.assertEqual(self.client.get(reverse('game_leaderboard', args=[game_id])).status_code, 401)


class SessionViewTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        soon = timezone.now() + timedelta(days=2)
        self.free = GroupSession.objects.create(title='Open day', meeting_link='https://zoom.us/j/1',
                                                session_date=soon, is_free=True)
        self.paid = GroupSession.objects.create(title='Members only', meeting_link='https://zoom.us/j/2',
                                                session_date=soon)

    def test_without_package_only_free_sessions(self):
        response = self.client.get(reverse('sessions_api'))
        titles = [s['title'] for s in response.json()['sessions']]
        self.assertEqual(titles, ['Open day'])

    def test_with_package_all_sessions(self):
        give_subscription(self.user, SubscriptionType.GROUP_SESSIONS, package_id=2)
        response = self.client.get(reverse('sessions_api'))
        self.assertEqual(len(response.json()['sessions']), 2)

    def test_paid_session_needs_package(self):
        response = self.client.post(reverse('session_enroll', args=[self.paid.pk]), HTTP_ACCEPT='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertFalse(self.paid.enrollments.exists())

    def test_free_session_enroll(self):
        self.client.post(reverse('session_enroll', args=[self.free.pk]))
        self.assertTrue(self.free.enrollments.filter(user=self.user).exists())



class SoloPaymentViewTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.client.force_login(self.user)
        self.solo = SoloSessionRequest.objects.create(
            user=self.user, status=SoloSessionRequest.Status.PAYMENT_PENDING, meeting_link='https://zoom.us/j/7',
        )

    def pay(self):
        return self.client.post(reverse('solo_session_pay', args=[self.solo.pk]),
                                data=json.dumps({'is_egypt': True}), content_type='application/json')

    @mock.patch('movokids.payments.create_checkout_session', side_effect=PaymentProviderError('down'))
    def test_provider_outage(self, create_checkout_session):
        response = self.pay()

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['error'], 'Payment provider is unavailable, please try again')

    @mock.patch('movokids.payments.create_checkout_session',
                return_value=('cs_9', 'https://checkout.stripe.com/c/cs_9'))
    def test_checkout_opened(self, create_checkout_session):
        body = self.pay().json()
        self.assertEqual(body['checkoutUrl'], 'https://checkout.stripe.com/c/cs_9')
        self.assertIn('amount=200', body['redirectUrl'])

class BlogPageTests(TestCase):

    def test_missing_post(self):
        self.assertEqual(self.client.get(reverse('blog_detail', args=['nope'])).status_code, 404)

    def test_list(self):
        from movokids.blogs import create_blog
        create_blog('hello', 'Hello families', '<p>Hi</p>')
        response = self.client.get(reverse('blog_list'))
        self.assertContains(response, 'Hello families')


class GuestCookieTests(TestCase):

    def test_cookie_set_once(self):
        response = self.client.get(reverse('home'))
        cookie = response.cookies[GUEST_COOKIE_NAME]
        self.assertTrue(cookie['httponly'])
        self.assertEqual(cookie['samesite'], 'Lax')

        again = self.client.get(reverse('home'))
        self.assertNotIn(GUEST_COOKIE_NAME, again.cookies)

    @mock.patch('movokids.payment_views.detect_is_egypt', return_value=True)
    def test_pricing_page_in_local_currency(self, detect):
        response = self.client.get(reverse('pricing'))
        self.assertContains(response, 'EGP')
