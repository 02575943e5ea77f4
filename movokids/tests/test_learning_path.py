from datetime import date, datetime, timedelta

from django.test import TestCase
from django.utils import timezone

from movokids import learning_path
from movokids.models import UserDayProgress, UserGameAttempt
from movokids.tests.helpers import make_day, make_user


def aware(year, month, day, hour=10):
    return timezone.make_aware(datetime(year, month, day, hour))


class StreakTests(TestCase):

    def test_counts_run_ending_at_highest_completed_day(self):
        self.assertEqual(learning_path.compute_streak([7, 6, 5, 3]), 3)

    def test_gap_right_below_highest_day_breaks_streak(self):
        self.assertEqual(learning_path.compute_streak([5, 3, 2, 1]), 1)

    def test_no_completed_days(self):
        self.assertEqual(learning_path.compute_streak([]), 0)

    def test_duplicates_are_ignored(self):
        self.assertEqual(learning_path.compute_streak([2, 2, 1]), 2)


class TimeUnlockTests(TestCase):

    def setUp(self):
        self.user = make_user()
        for number in range(1, 6):
            make_day(number, game_count=1)

    def start_path(self, started_at):
        self.user.profile.learning_path_started_at = started_at
        self.user.profile.save()

    def test_day_one_before_the_path_is_started(self):
        self.assertEqual(learning_path.get_available_day_by_time(self.user, today=date(2025, 3, 1)), 1)

    def test_one_new_day_per_calendar_day(self):
        self.start_path(aware(2025, 3, 1))
        self.assertEqual(learning_path.get_available_day_by_time(self.user, today=date(2025, 3, 1)), 1)
        self.assertEqual(learning_path.get_available_day_by_time(self.user, today=date(2025, 3, 3)), 3)

    def test_never_past_the_last_active_day(self):
        self.start_path(aware(2025, 3, 1))
        self.assertEqual(learning_path.get_available_day_by_time(self.user, today=date(2025, 4, 1)), 5)

    def test_late_evening_start_still_counts_calendar_days(self):
        self.start_path(aware(2025, 3, 1, hour=23))
        self.assertEqual(learning_path.get_available_day_by_time(self.user, today=date(2025, 3, 2)), 2)

    def test_locked_day_reports_when_it_opens(self):
        started = aware(2025, 3, 1)
        self.start_path(started)

        availability = learning_path.get_day_availability(self.user, 4, today=date(2025, 3, 2))

        self.assertFalse(availability['can_access'])
        self.assertEqual(availability['reason'], 'time_locked')
        self.assertEqual(availability['available_date'], started + timedelta(days=3))

    def test_open_day(self):
        self.start_path(aware(2025, 3, 1))
        availability = learning_path.get_day_availability(self.user, 2, today=date(2025, 3, 2))
        self.assertTrue(availability['can_access'])
        self.assertIsNone(availability['available_date'])

    def test_opening_the_path_sets_start_date_once(self):
        first = learning_path.initialize_learning_path_start_date(self.user, now=aware(2025, 3, 1))
        second = learning_path.initialize_learning_path_start_date(self.user, now=aware(2025, 3, 9))
        self.assertEqual(first, second)


class DayCompletionTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.day = learning_path.get_learning_day_by_number(make_day(1, game_count=3).day_number)
        self.day_games = list(self.day.day_games.all())

    def play(self, index, is_correct=True, score=80):
        day_game = self.day_games[index]
        return learning_path.record_game_attempt(
            self.user, day_game.game, self.day, is_correct, score, day_game=day_game, time_taken_seconds=30
        )

    def test_attempts_are_numbered_per_game(self):
        self.play(0, is_correct=False)
        second = self.play(0)
        other = self.play(1)
        self.assertEqual(second.attempt_number, 2)
        self.assertEqual(other.attempt_number, 1)

    def test_day_with_fewer_games_than_required_needs_all_of_them(self):
        self.play(0)
        self.play(1)
        progress = learning_path.get_user_day_progress(self.user, self.day)
        self.assertFalse(progress.is_completed)
        self.assertEqual(progress.games_correct_count, 2)
        self.assertEqual(progress.current_game_order, 3)

        self.play(2)
        progress.refresh_from_db()
        self.assertTrue(progress.is_completed)
        self.assertIsNotNone(progress.completed_at)

    def test_wrong_answers_and_repeats_do_not_count_twice(self):
        self.play(0)
        self.play(0)
        self.play(1, is_correct=False)
        progress = learning_path.get_user_day_progress(self.user, self.day)
        self.assertEqual(progress.games_correct_count, 1)

    def test_required_count_below_game_count(self):
        self.day.required_correct_games = 2
        self.day.save()
        self.play(0)
        self.play(2)
        self.assertTrue(learning_path.get_user_day_progress(self.user, self.day).is_completed)

    def test_reset_clears_the_day(self):
        self.play(0)
        learning_path.reset_day_progress(self.user, self.day)
        self.assertFalse(UserGameAttempt.objects.filter(user=self.user).exists())
        self.assertFalse(UserDayProgress.objects.filter(user=self.user).exists())

    def test_day_details_group_attempts_by_game(self):
        self.play(0, is_correct=False)
        self.play(0)
        details = learning_path.get_day_progress_details(self.user, 1)
        first = details['games'][0]
        self.assertEqual(len(first['attempts']), 2)
        self.assertTrue(first['is_completed'])
        self.assertFalse(details['games'][1]['is_completed'])

    def test_missing_day_details(self):
        self.assertIsNone(learning_path.get_day_progress_details(self.user, 42))


class StatsTests(TestCase):

    def setUp(self):
        self.user = make_user()
        self.days = [learning_path.get_learning_day_by_number(make_day(n, game_count=1).day_number)
                     for n in (1, 2, 3)]

    def complete(self, day, score=90):
        day_game = day.day_games.all()[0]
        learning_path.record_game_attempt(self.user, day_game.game, day, True, score, day_game=day_game,
                                          time_taken_seconds=40)

    def test_fresh_child(self):
        stats = learning_path.get_user_learning_path_stats(self.user)
        self.assertEqual(stats['total_days'], 3)
        self.assertEqual(stats['completed_days'], 0)
        self.assertEqual(stats['current_day'], 1)
        self.assertEqual(stats['streak'], 0)
        self.assertIsNone(stats['last_played_at'])

    def test_after_two_days(self):
        self.complete(self.days[0], score=80)
        self.complete(self.days[1], score=100)

        stats = learning_path.get_user_learning_path_stats(self.user)

        self.assertEqual(stats['completed_days'], 2)
        self.assertEqual(stats['current_day'], 3)
        self.assertEqual(stats['streak'], 2)
        self.assertEqual(stats['average_score'], 90)
        self.assertEqual(stats['total_time_played'], 80)
        self.assertEqual(learning_path.get_user_current_day(self.user), self.days[2])

    def test_current_day_stays_on_last_day_when_all_done(self):
        for day in self.days:
            self.complete(day)
        self.assertEqual(learning_path.get_user_learning_path_stats(self.user)['current_day'], 3)

    def test_leaderboard_orders_by_score_then_time(self):
        other = make_user('other@example.com', child_first_name='Omar')
        day = self.days[0]
        day_game = day.day_games.all()[0]
        learning_path.record_game_attempt(self.user, day_game.game, day, True, 70, time_taken_seconds=20)
        learning_path.record_game_attempt(other, day_game.game, day, True, 90, time_taken_seconds=60)
        learning_path.record_game_attempt(other, day_game.game, day, False, 100, time_taken_seconds=5)

        board = learning_path.get_game_leaderboard(day_game.game)

        self.assertEqual([a.score for a in board], [90, 70])
        self.assertEqual(board[0].user, other)
