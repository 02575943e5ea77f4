import json
from datetime import timedelta
from io import StringIO
from unittest import mock

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from movokids import analytics, content, learning_path
from movokids.blogs import create_blog
from movokids.models import Blog, DayGame, Game, LearningDay, SoloSessionRequest, Subscription
from movokids.tests.helpers import give_subscription, make_day, make_user


class AdminApiTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.admin = make_user('admin@example.com', role='admin')
        self.client.force_login(self.admin)

    def post_json(self, name, payload, args=None):
        return self.client.post(reverse(name, args=args), data=json.dumps(payload), content_type='application/json')


class AccessTests(AdminApiTestCase):

    def test_families_are_forbidden(self):
        self.client.force_login(make_user())
        self.assertEqual(self.client.get(reverse('admin_stats')).status_code, 403)

    def test_anonymous_is_unauthorized(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse('admin_stats')).status_code, 401)

    def test_backoffice_page_sends_families_home(self):
        self.client.force_login(make_user())
        response = self.client.get(reverse('backoffice'))
        self.assertRedirects(response, reverse('dashboard'), fetch_redirect_response=False)

    def test_backoffice_page(self):
        make_user('family@example.com', child_first_name='Nour')
        response = self.client.get(reverse('backoffice'))
        self.assertContains(response, 'Nour')


class ContentApiTests(AdminApiTestCase):

    def test_new_day_defaults(self):
        response = self.post_json('admin_days', {'day_number': 1, 'title': 'Warm up'})

        self.assertEqual(response.status_code, 201)
        day = LearningDay.objects.get(day_number=1)
        self.assertEqual(day.required_correct_games, 5)
        self.assertTrue(day.is_active)

    def test_partial_day_update(self):
        day = make_day(1, game_count=0)
        self.post_json('admin_day', {'is_active': False}, args=[day.pk])
        day.refresh_from_db()
        self.assertFalse(day.is_active)
        self.assertEqual(day.title, 'Day 1')

    def test_game_config_must_be_an_object(self):
        response = self.post_json('admin_games', {'type': 'memory', 'name': 'Pairs', 'config': [1, 2]})
        self.assertEqual(response.status_code, 400)

    def test_new_game(self):
        response = self.post_json('admin_games', {'type': 'simon', 'name': 'Simon', 'config': {'rounds': 5}})
        self.assertEqual(response.status_code, 201)
        game = Game.objects.get(name='Simon')
        self.assertEqual(game.config, {'rounds': 5})
        self.assertEqual(game.difficulty_level, 1)

    def test_game_goes_to_the_end_of_the_day(self):
        day = make_day(1, game_count=2)
        game = Game.objects.create(type='reaction', name='Quick tap')

        response = self.post_json('admin_day_games', {'game': game.pk}, args=[day.pk])

        self.assertEqual(response.status_code, 201)
        self.assertEqual(DayGame.objects.get(game=game).order_in_day, 3)

    def test_reorder(self):
        day = make_day(1, game_count=2)
        first, second = content.get_day_games(day)

        response = self.post_json('admin_reorder_day_games', {'orders': [
            {'id': first.pk, 'order_in_day': 2}, {'id': second.pk, 'order_in_day': 1},
        ]}, args=[day.pk])

        ids = [dg['id'] for dg in response.json()['day_games']]
        self.assertEqual(ids, [second.pk, first.pk])

    def test_reorder_rejects_shared_positions(self):
        day = make_day(1, game_count=2)
        first, second = content.get_day_games(day)
        response = self.post_json('admin_reorder_day_games', {'orders': [
            {'id': first.pk, 'order_in_day': 1}, {'id': second.pk, 'order_in_day': 1},
        ]}, args=[day.pk])
        self.assertEqual(response.status_code, 400)

    def test_reorder_rejects_games_from_other_days(self):
        day = make_day(1, game_count=1)
        other = make_day(2, game_count=1)
        stranger = content.get_day_games(other)[0]
        response = self.post_json('admin_reorder_day_games', {'orders': [{'id': stranger.pk, 'order_in_day': 1}]},
                                  args=[day.pk])
        self.assertEqual(response.status_code, 400)

    def test_games_filtered_by_type(self):
        Game.objects.create(type='memory', name='Pairs')
        Game.objects.create(type='simon', name='Simon')
        response = self.client.get(reverse('admin_games'), {'type': 'simon'})
        self.assertEqual([g['name'] for g in response.json()['games']], ['Simon'])


class SoloRequestAdminTests(AdminApiTestCase):

    def test_respond(self):
        family = make_user()
        solo = SoloSessionRequest.objects.create(user=family)

        response = self.post_json('admin_respond_solo_request', {
            'status': 'payment_pending', 'meeting_link': 'https://zoom.us/j/5', 'admin_reason': 'Sunday 5pm?',
        }, args=[solo.pk])

        self.assertTrue(response.json()['success'])
        solo.refresh_from_db()
        self.assertEqual(solo.status, SoloSessionRequest.Status.PAYMENT_PENDING)

    def test_respond_without_link(self):
        solo = SoloSessionRequest.objects.create(user=make_user())
        response = self.post_json('admin_respond_solo_request', {'status': 'approved'}, args=[solo.pk])
        self.assertEqual(response.json()['error'], 'Meeting link is required')


class BlogAdminTests(AdminApiTestCase):

    def test_create_and_list(self):
        response = self.post_json('admin_blogs', {'slug': 'first-post', 'title': 'First', 'content': '<p>x</p>'})
        self.assertEqual(response.status_code, 201)

        listing = self.client.get(reverse('admin_blogs')).json()
        self.assertEqual(listing['rowsCount'], 1)
        self.assertEqual(listing['rows'][0]['slug'], 'first-post')

    def test_bad_page_number(self):
        response = self.client.get(reverse('admin_blogs'), {'page': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'page and limit must be numbers')

    def test_duplicate_slug(self):
        create_blog('taken', 'Taken', '<p>x</p>')
        response = self.post_json('admin_blogs', {'slug': 'taken', 'title': 'Again', 'content': '<p>y</p>'})
        self.assertEqual(response.json()['error'], 'Slug already exists')

    def test_update(self):
        create_blog('tips', 'Tips', '<p>x</p>')
        self.post_json('admin_blog', {'title': 'Better tips'}, args=['tips'])
        self.assertEqual(Blog.objects.get(slug='tips').title, 'Better tips')

    def test_delete(self):
        create_blog('bye', 'Bye', '<p>x</p>')
        self.assertEqual(self.post_json('blog_delete', {'slug': 'bye'}).json(), {'success': True})
        self.assertEqual(self.post_json('blog_delete', {'slug': 'bye'}).status_code, 404)
        self.assertEqual(self.post_json('blog_delete', {}).status_code, 400)

    @mock.patch('movokids.blogs.default_storage')
    def test_upload(self, storage):
        storage.save.side_effect = lambda path, content: path
        storage.url.side_effect = lambda path: f'/media/{path}'
        upload = SimpleUploadedFile('pic.png', b'\x89PNG', content_type='image/png')

        response = self.client.post(reverse('blog_upload'), {'file': upload})

        self.assertTrue(response.json()['url'].startswith('/media/blogs/blog_'))

    def test_upload_needs_a_file(self):
        response = self.client.post(reverse('blog_upload'))
        self.assertEqual(response.json()['error'], 'No file provided')


class AnalyticsTests(TestCase):

    def setUp(self):
        self.days = [make_day(n, game_count=1) for n in (1, 2, 3, 4)]
        make_user('admin@example.com', role='admin')

    def complete(self, user, day):
        day_game = day.day_games.all()[0]
        learning_path.record_game_attempt(user, day_game.game, day, True, 80, time_taken_seconds=30)

    def test_dashboard_stats(self):
        busy = make_user('busy@example.com')
        make_user('idle@example.com')
        self.complete(busy, self.days[0])
        self.complete(busy, self.days[1])

        stats = analytics.get_dashboard_stats()

        self.assertEqual(stats['total_users'], 2)
        self.assertEqual(stats['total_admins'], 1)
        self.assertEqual(stats['active_users'], 1)
        self.assertEqual(stats['total_learning_days_completed'], 2)
        # busy 50%, idle 0%
        self.assertEqual(stats['avg_completion_rate'], 25)

    def test_family_rows_leave_admins_out(self):
        busy = make_user('busy@example.com')
        self.complete(busy, self.days[0])

        rows = analytics.get_all_users()

        self.assertEqual([r['email'] for r in rows], ['busy@example.com'])
        self.assertEqual(rows[0]['completed_days'], 1)
        self.assertEqual(rows[0]['total_games_completed'], 1)
        self.assertEqual(rows[0]['total_time_spent'], 30)

    def test_user_details(self):
        busy = make_user('busy@example.com')
        self.complete(busy, self.days[0])
        details = analytics.get_user_details(busy.profile)
        self.assertEqual(details['email'], 'busy@example.com')
        self.assertEqual(details['progress'][0]['games_completed'], 1)
        self.assertEqual(details['progress'][0]['average_score'], 80)

    def test_quiz_analytics(self):
        make_user('a@example.com', initial_quiz_score=10, category_scores={'Inattention': 6})
        make_user('b@example.com', initial_quiz_score=20, category_scores={'Inattention': 8})

        result = analytics.get_quiz_analytics()

        self.assertEqual(result['total_quizzes_taken'], 2)
        self.assertEqual(result['avg_initial_score'], 15)
        self.assertEqual(result['category_breakdown'], {'Inattention': 7})


class ExpireSubscriptionsCommandTests(TestCase):

    def test_expires_lapsed_packages(self):
        user = make_user()
        now = timezone.now()
        lapsed = give_subscription(user, start_date=now - timedelta(days=40),
                                   end_date=now - timedelta(days=1))
        out = StringIO()

        call_command('expire_subscriptions', stdout=out)

        lapsed.refresh_from_db()
        self.assertEqual(lapsed.status, Subscription.Status.EXPIRED)
        self.assertIn('Expired 1 subscription(s).', out.getvalue())

    def test_nothing_to_do(self):
        out = StringIO()
        call_command('expire_subscriptions', stdout=out)
        self.assertIn('No action taken', out.getvalue())
