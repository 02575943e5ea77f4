"""
Learning path rules.

Days unlock by the calendar, one per day since the child first opened the
path. Finishing a day never unlocks the next one early; it only counts
towards stats and the streak. A day is finished once enough of its games
have a correct attempt.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F, Max, Prefetch
from django.utils import timezone

from .models import DayGame, LearningDay, UserDayProgress, UserGameAttempt
from .permissions import profile_for

logger = logging.getLogger(__name__)


# ================================
# DAYS
# ================================

def _with_ordered_games(queryset):
    return queryset.prefetch_related(
        Prefetch(
            'day_games',
            queryset=DayGame.objects.select_related('game').order_by('order_in_day', 'id'),
        )
    )


def get_learning_days():
    """All active days in path order."""
    return list(LearningDay.objects.filter(is_active=True).order_by('day_number'))


def get_learning_day_with_games(day_id):
    return _with_ordered_games(LearningDay.objects.filter(pk=day_id, is_active=True)).first()


def get_learning_day_by_number(day_number):
    return _with_ordered_games(LearningDay.objects.filter(day_number=day_number, is_active=True)).first()


def total_active_days():
    return LearningDay.objects.filter(is_active=True).count()


# ================================
# PROGRESS & ATTEMPTS
# ================================

def get_user_day_progress(user, learning_day):
    return UserDayProgress.objects.filter(user=user, learning_day=learning_day).first()


def get_user_all_day_progress(user):
    return list(
        UserDayProgress.objects.filter(user=user)
        .select_related('learning_day')
        .order_by('learning_day__day_number')
    )


def get_user_game_attempts_for_day(user, learning_day):
    return list(
        UserGameAttempt.objects.filter(user=user, learning_day=learning_day)
        .select_related('game')
        .order_by('created_at', 'id')
    )


def get_day_progress_details(user, day_number):
    """
    Everything the day screen needs: the day, the child's progress row and,
    for each game of the day, its attempts and whether it has been solved.
    """
    day = get_learning_day_by_number(day_number)
    if day is None:
        return None

    attempts = get_user_game_attempts_for_day(user, day)
    games = []
    for day_game in day.day_games.all():
        game_attempts = [a for a in attempts if a.game_id == day_game.game_id]
        games.append({
            'day_game': day_game,
            'game': day_game.game,
            'attempts': game_attempts,
            'is_completed': any(a.is_correct for a in game_attempts),
        })

    return {
        'day': day,
        'progress': get_user_day_progress(user, day),
        'games': games,
    }


def record_game_attempt(user, game, learning_day, is_correct, score, day_game=None,
                        time_taken_seconds=None, mistakes_count=0, game_data=None):
    """
    Store one play of a game and refresh the day's progress.
    Attempts are numbered per (child, game, day), starting at 1.
    """
    with transaction.atomic():
        last_number = UserGameAttempt.objects.filter(
            user=user, game=game, learning_day=learning_day
        ).aggregate(last=Max('attempt_number'))['last']

        attempt = UserGameAttempt.objects.create(
            user=user,
            game=game,
            learning_day=learning_day,
            day_game=day_game,
            is_correct=is_correct,
            score=score,
            time_taken_seconds=time_taken_seconds,
            attempt_number=(last_number or 0) + 1,
            mistakes_count=mistakes_count or 0,
            game_data=game_data or {},
        )
        refresh_day_progress(user, learning_day)

    logger.info(
        "Attempt %s on game %s (day %s) for user %s: correct=%s score=%s",
        attempt.attempt_number, game.pk, learning_day.day_number, user.pk, is_correct, score,
    )
    return attempt


def refresh_day_progress(user, learning_day, now=None):
    """
    Recount solved games for the day and complete it when enough are solved.
    A day needs `required_correct_games` solved games, or all of them when it
    has fewer games assigned. Completion is sticky.
    """
    day_games = list(learning_day.day_games.order_by('order_in_day', 'id'))
    solved_game_ids = set(
        UserGameAttempt.objects.filter(
            user=user, learning_day=learning_day, is_correct=True
        ).values_list('game_id', flat=True)
    )

    progress, _ = UserDayProgress.objects.get_or_create(user=user, learning_day=learning_day)
    progress.games_correct_count = sum(1 for dg in day_games if dg.game_id in solved_game_ids)

    unsolved = [dg for dg in day_games if dg.game_id not in solved_game_ids]
    if unsolved:
        progress.current_game_order = unsolved[0].order_in_day
    elif day_games:
        progress.current_game_order = day_games[-1].order_in_day + 1

    required = min(learning_day.required_correct_games, len(day_games))
    if day_games and progress.games_correct_count >= required and not progress.is_completed:
        progress.is_completed = True
        progress.completed_at = now or timezone.now()
        logger.info("User %s completed day %s", user.pk, learning_day.day_number)

    progress.save()
    return progress


def reset_day_progress(user, learning_day):
    """Wipe a day's attempts and progress so the child can replay it from scratch."""
    with transaction.atomic():
        UserGameAttempt.objects.filter(user=user, learning_day=learning_day).delete()
        UserDayProgress.objects.filter(user=user, learning_day=learning_day).delete()


# ================================
# STATS
# ================================

def compute_streak(completed_day_numbers):
    """
    Length of the run of consecutive day numbers that ends at the highest
    completed day. {7, 6, 5, 3} -> 3.
    """
    streak = 0
    previous = None
    for number in sorted(set(completed_day_numbers), reverse=True):
        if previous is not None and previous - number != 1:
            break
        streak += 1
        previous = number
    return streak


def get_user_learning_path_stats(user):
    total_days = total_active_days()
    progress_rows = get_user_all_day_progress(user)
    completed = [p for p in progress_rows if p.is_completed]
    first_incomplete = next((p for p in progress_rows if not p.is_completed), None)

    current_day = 1
    if first_incomplete is not None:
        current_day = first_incomplete.learning_day.day_number
    elif completed:
        current_day = min(completed[-1].learning_day.day_number + 1, total_days)

    attempts = list(UserGameAttempt.objects.filter(user=user).order_by('-created_at', '-id'))
    total_played = len(attempts)
    average_score = sum(a.score for a in attempts) / total_played if total_played else 0

    return {
        'total_days': total_days,
        'completed_days': len(completed),
        'current_day': current_day,
        'total_games_played': total_played,
        'total_games_completed': sum(1 for a in attempts if a.is_correct),
        'average_score': round(average_score),
        'total_time_played': sum(a.time_taken_seconds or 0 for a in attempts),
        'streak': compute_streak(p.learning_day.day_number for p in completed),
        'last_played_at': attempts[0].created_at if attempts else None,
    }


def get_user_current_day(user):
    stats = get_user_learning_path_stats(user)
    return get_learning_day_by_number(stats['current_day'])


# ================================
# TIME-BASED UNLOCKING
# ================================

def initialize_learning_path_start_date(user, now=None):
    """Start the child's calendar the first time they open the path."""
    profile = profile_for(user)
    if profile.learning_path_started_at is None:
        profile.learning_path_started_at = now or timezone.now()
        profile.save(update_fields=['learning_path_started_at'])
        logger.info("Learning path started for user %s", user.pk)
    return profile.learning_path_started_at


def get_available_day_by_time(user, today=None):
    """
    Highest day number the calendar allows today.
    Day 1 on the start date, day 2 the next calendar day, and so on,
    never past the last active day.
    """
    profile = profile_for(user)
    if profile.learning_path_started_at is None:
        return 1

    today = today or timezone.localdate()
    start_date = timezone.localtime(profile.learning_path_started_at).date()
    days_elapsed = max((today - start_date).days, 0)
    return min(days_elapsed + 1, total_active_days())


def can_access_day(user, day_number, today=None):
    initialize_learning_path_start_date(user)
    return day_number <= get_available_day_by_time(user, today=today)


def get_day_availability(user, day_number, today=None):
    started_at = initialize_learning_path_start_date(user)
    available_day = get_available_day_by_time(user, today=today)

    if day_number > available_day:
        return {
            'can_access': False,
            'reason': 'time_locked',
            'available_date': started_at + timedelta(days=day_number - 1),
        }
    return {'can_access': True, 'reason': 'available', 'available_date': None}


# ================================
# LEADERBOARD
# ================================

def get_game_leaderboard(game, limit=10):
    """Best correct attempts for a game: highest score first, fastest on ties."""
    return list(
        UserGameAttempt.objects.filter(game=game, is_correct=True)
        .select_related('user__profile')
        .order_by('-score', F('time_taken_seconds').asc(nulls_last=True), 'created_at')[:limit]
    )
