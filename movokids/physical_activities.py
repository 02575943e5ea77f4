"""
Daily movement videos.

Every calendar day shows the same handful of videos to everyone, picked
from the active catalogue with a generator seeded by the date.
"""
import logging
import random
from datetime import datetime, time, timedelta

from django.core.exceptions import SuspiciousFileOperation, ValidationError
from django.core.files.storage import default_storage
from django.utils import timezone

from .models import PhysicalActivityVideo, UserPhysicalActivityProgress
from .permissions import profile_for

logger = logging.getLogger(__name__)

DAILY_VIDEO_COUNT = 4
MAX_STREAK_DAYS = 365


def _start_of_day(day):
    return timezone.make_aware(datetime.combine(day, time.min))


def initialize_physical_activities_start_date(user, now=None):
    profile = profile_for(user)
    if profile.physical_activities_started_at is None:
        profile.physical_activities_started_at = now or timezone.now()
        profile.save(update_fields=['physical_activities_started_at'])


def get_todays_videos(videos, day):
    """
    Pick up to DAILY_VIDEO_COUNT videos for `day`.
    `videos` must come in a stable order (by video number) for the pick to be repeatable.
    """
    videos = list(videos)
    if not videos:
        return []
    rng = random.Random(int(day.strftime('%Y%m%d')))
    return rng.sample(videos, min(DAILY_VIDEO_COUNT, len(videos)))


def video_file_exists(storage_path):
    try:
        return default_storage.exists(storage_path)
    except (OSError, SuspiciousFileOperation):
        logger.exception("Could not check storage for video %s", storage_path)
        return False


def get_todays_physical_activity(user, today=None):
    today = today or timezone.localdate()
    initialize_physical_activities_start_date(user)

    all_videos = list(PhysicalActivityVideo.objects.filter(is_active=True).order_by('video_number'))
    if not all_videos:
        return {
            'available_videos': [],
            'watched_video_numbers': [],
            'total_videos_watched': 0,
            'total_videos_available': 0,
            'today_progress': [],
        }

    available = []
    for video in get_todays_videos(all_videos, today):
        if video_file_exists(video.storage_path):
            available.append(video)
        else:
            logger.warning("Video not found in storage: %s", video.storage_path)

    day_start = _start_of_day(today)
    today_progress = list(
        UserPhysicalActivityProgress.objects.filter(
            user=user,
            watched_at__gte=day_start,
            watched_at__lt=day_start + timedelta(days=1),
        ).order_by('-watched_at')
    )
    watched_total = (
        UserPhysicalActivityProgress.objects.filter(user=user, is_completed=True)
        .values('video_number').distinct().count()
    )

    return {
        'available_videos': available,
        'watched_video_numbers': [p.video_number for p in today_progress],
        'total_videos_watched': watched_total,
        'total_videos_available': len(all_videos),
        'today_progress': today_progress,
    }


def record_physical_activity_watch(user, video_number, watch_duration_seconds=None, now=None):
    """Log a finished video. Children may watch as many videos a day as they like."""
    if not PhysicalActivityVideo.objects.filter(video_number=video_number, is_active=True).exists():
        raise ValidationError("Video not found or inactive")

    return UserPhysicalActivityProgress.objects.create(
        user=user,
        video_number=video_number,
        is_completed=True,
        watch_duration_seconds=watch_duration_seconds,
        watched_at=now or timezone.now(),
    )


def compute_watch_streak(watch_dates, today, limit=MAX_STREAK_DAYS):
    """Consecutive calendar days with at least one watch, counting back from today."""
    watch_dates = set(watch_dates)
    streak = 0
    day = today
    while streak < limit and day in watch_dates:
        streak += 1
        day -= timedelta(days=1)
    return streak


def get_user_physical_activity_stats(user, today=None):
    today = today or timezone.localdate()
    profile = profile_for(user)

    progress = list(
        UserPhysicalActivityProgress.objects.filter(user=user, is_completed=True).order_by('watched_at')
    )
    active_videos = PhysicalActivityVideo.objects.filter(is_active=True).count()

    return {
        'total_videos_watched': len({p.video_number for p in progress}),
        'current_video_number': min(DAILY_VIDEO_COUNT, active_videos),
        'streak': compute_watch_streak((timezone.localtime(p.watched_at).date() for p in progress), today),
        'last_watched_at': progress[-1].watched_at if progress else None,
        'total_watch_time': sum(p.watch_duration_seconds or 0 for p in progress),
        'started_at': profile.physical_activities_started_at,
    }
