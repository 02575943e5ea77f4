"""
Back-office numbers: family list with progress, headline stats and quiz trends.
"""
import logging
from datetime import timedelta

from django.db.models import Avg, Count, Q, Sum
from django.utils import timezone

from .learning_path import total_active_days
from .models import ChildProfile, UserDayProgress, UserGameAttempt

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=7)


def _family_profiles():
    return ChildProfile.objects.filter(role=ChildProfile.Role.USER, user__is_superuser=False)


def _completed_days_by_user(user_ids=None):
    rows = UserDayProgress.objects.filter(is_completed=True)
    if user_ids is not None:
        rows = rows.filter(user_id__in=user_ids)
    return dict(rows.values('user_id').annotate(n=Count('id')).values_list('user_id', 'n'))


def get_all_users():
    """Every family account (admins left out), newest first, with its progress totals."""
    profiles = list(_family_profiles().select_related('user').order_by('-created_at'))
    user_ids = [p.user_id for p in profiles]

    completed = _completed_days_by_user(user_ids)
    attempt_totals = {
        row['user_id']: row
        for row in UserGameAttempt.objects.filter(user_id__in=user_ids)
        .values('user_id')
        .annotate(
            games_completed=Count('id', filter=Q(is_correct=True)),
            avg_score=Avg('score'),
            time_spent=Sum('time_taken_seconds'),
        )
    }

    rows = []
    for profile in profiles:
        totals = attempt_totals.get(profile.user_id, {})
        rows.append({
            'profile': profile,
            'email': profile.user.email,
            'completed_days': completed.get(profile.user_id, 0),
            'total_games_completed': totals.get('games_completed') or 0,
            'overall_avg_score': round(totals.get('avg_score') or 0, 2),
            'total_time_spent': totals.get('time_spent') or 0,
        })
    return rows


def get_dashboard_stats(now=None):
    now = now or timezone.now()
    families = _family_profiles()
    total_users = families.count()

    active_users = (
        UserDayProgress.objects.filter(updated_at__gte=now - ACTIVE_WINDOW)
        .values('user_id').distinct().count()
    )
    days_completed = UserDayProgress.objects.filter(is_completed=True).count()

    # Families with no finished day still count, at 0%
    path_length = total_active_days()
    avg_completion_rate = 0
    if total_users and path_length:
        user_ids = list(families.values_list('user_id', flat=True))
        completed = _completed_days_by_user(user_ids)
        rates = [completed.get(uid, 0) / path_length * 100 for uid in user_ids]
        avg_completion_rate = round(sum(rates) / len(rates))

    return {
        'total_users': total_users,
        'total_admins': ChildProfile.objects.filter(
            role__in=[ChildProfile.Role.ADMIN, ChildProfile.Role.SUPER_ADMIN]
        ).count(),
        'active_users': active_users,
        'total_learning_days_completed': days_completed,
        'avg_completion_rate': avg_completion_rate,
    }


def get_user_details(profile):
    """One family's profile and, per day played, how it went."""
    progress_rows = list(
        UserDayProgress.objects.filter(user_id=profile.user_id)
        .select_related('learning_day')
        .order_by('-created_at')
    )
    attempts = list(UserGameAttempt.objects.filter(user_id=profile.user_id))

    progress = []
    for row in progress_rows:
        day_attempts = [a for a in attempts if a.learning_day_id == row.learning_day_id]
        progress.append({
            'progress': row,
            'learning_day': row.learning_day,
            'games_completed': sum(1 for a in day_attempts if a.is_correct),
            'time_spent': sum(a.time_taken_seconds or 0 for a in day_attempts),
            'average_score': (
                sum(a.score for a in day_attempts) / len(day_attempts) if day_attempts else 0
            ),
        })

    return {'profile': profile, 'email': profile.user.email, 'progress': progress}


def get_quiz_analytics():
    profiles = list(
        _family_profiles().order_by('-created_at').values('initial_quiz_score', 'category_scores')
    )
    if not profiles:
        return {'avg_initial_score': 0, 'total_quizzes_taken': 0, 'category_breakdown': {}}

    avg_initial = sum(p['initial_quiz_score'] or 0 for p in profiles) / len(profiles)

    by_category = {}
    for p in profiles:
        for category, score in (p['category_scores'] or {}).items():
            try:
                by_category.setdefault(category, []).append(float(score))
            except (TypeError, ValueError):
                logger.warning("Ignoring non-numeric quiz score %r for %s", score, category)

    return {
        'avg_initial_score': round(avg_initial),
        'total_quizzes_taken': len(profiles),
        'category_breakdown': {
            category: round(sum(scores) / len(scores)) for category, scores in by_category.items()
        },
    }
