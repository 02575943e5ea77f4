from datetime import date, datetime
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from movokids import physical_activities
from movokids.models import PhysicalActivityVideo
from movokids.tests.helpers import make_user


def make_videos(count):
    return [
        PhysicalActivityVideo.objects.create(
            video_number=n, title=f'Jump #{n}', storage_path=f'videos/{n}.mp4', duration_seconds=120
        )
        for n in range(1, count + 1)
    ]


class TodaysVideosTests(TestCase):

    def test_same_pick_all_day(self):
        videos = make_videos(10)
        first = physical_activities.get_todays_videos(videos, date(2025, 5, 4))
        second = physical_activities.get_todays_videos(list(videos), date(2025, 5, 4))
        self.assertEqual(first, second)
        self.assertEqual(len(first), physical_activities.DAILY_VIDEO_COUNT)

    def test_small_catalogue_is_shown_whole(self):
        videos = make_videos(2)
        self.assertCountEqual(physical_activities.get_todays_videos(videos, date(2025, 5, 4)), videos)

    def test_empty_catalogue(self):
        self.assertEqual(physical_activities.get_todays_videos([], date(2025, 5, 4)), [])


@mock.patch('movokids.physical_activities.default_storage')
class TodaysActivityTests(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_no_videos(self, storage):
        result = physical_activities.get_todays_physical_activity(self.user, today=date(2025, 5, 4))
        self.assertEqual(result['available_videos'], [])
        self.assertEqual(result['total_videos_available'], 0)

    def test_missing_files_are_dropped(self, storage):
        make_videos(3)
        storage.exists.side_effect = lambda path: path != 'videos/2.mp4'

        result = physical_activities.get_todays_physical_activity(self.user, today=date(2025, 5, 4))

        self.assertEqual(sorted(v.video_number for v in result['available_videos']), [1, 3])
        self.assertEqual(result['total_videos_available'], 3)

    def test_storage_error_counts_as_missing(self, storage):
        make_videos(1)
        storage.exists.side_effect = OSError('bucket unreachable')
        result = physical_activities.get_todays_physical_activity(self.user, today=date(2025, 5, 4))
        self.assertEqual(result['available_videos'], [])

    def test_todays_watches_only(self, storage):
        make_videos(3)
        storage.exists.return_value = True
        physical_activities.record_physical_activity_watch(
            self.user, 1, now=timezone.make_aware(datetime(2025, 5, 3, 12))
        )
        physical_activities.record_physical_activity_watch(
            self.user, 2, now=timezone.make_aware(datetime(2025, 5, 4, 9))
        )

        result = physical_activities.get_todays_physical_activity(self.user, today=date(2025, 5, 4))

        self.assertEqual(result['watched_video_numbers'], [2])
        self.assertEqual(result['total_videos_watched'], 2)

    def test_opening_the_page_starts_the_calendar(self, storage):
        physical_activities.get_todays_physical_activity(self.user, today=date(2025, 5, 4))
        self.user.profile.refresh_from_db()
        self.assertIsNotNone(self.user.profile.physical_activities_started_at)


class WatchTests(TestCase):

    def setUp(self):
        self.user = make_user()
        make_videos(2)

    def test_inactive_video_is_rejected(self):
        PhysicalActivityVideo.objects.filter(video_number=2).update(is_active=False)
        with self.assertRaises(ValidationError):
            physical_activities.record_physical_activity_watch(self.user, 2)

    def test_unknown_video_is_rejected(self):
        with self.assertRaises(ValidationError):
            physical_activities.record_physical_activity_watch(self.user, 99)

    def test_rewatching_is_allowed(self):
        physical_activities.record_physical_activity_watch(self.user, 1)
        physical_activities.record_physical_activity_watch(self.user, 1)
        self.assertEqual(self.user.activity_progress.count(), 2)

    def test_streak_counts_back_from_today(self):
        watched = [date(2025, 5, 4), date(2025, 5, 3), date(2025, 5, 1)]
        self.assertEqual(physical_activities.compute_watch_streak(watched, date(2025, 5, 4)), 2)
        self.assertEqual(physical_activities.compute_watch_streak(watched, date(2025, 5, 5)), 0)

    def test_stats(self):
        for hour in (9, 10):
            physical_activities.record_physical_activity_watch(
                self.user, 1, watch_duration_seconds=60,
                now=timezone.make_aware(datetime(2025, 5, 4, hour)),
            )
        physical_activities.record_physical_activity_watch(
            self.user, 2, watch_duration_seconds=30,
            now=timezone.make_aware(datetime(2025, 5, 3, 9)),
        )

        stats = physical_activities.get_user_physical_activity_stats(self.user, today=date(2025, 5, 4))

        self.assertEqual(stats['total_videos_watched'], 2)
        self.assertEqual(stats['total_watch_time'], 150)
        self.assertEqual(stats['streak'], 2)
        self.assertEqual(stats['current_video_number'], 2)
