import logging

from django.contrib import messages
from django.contrib.auth import login, logout
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.core.files.storage import default_storage
from django.http import Http404, JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_GET, require_POST

from . import coaching, learning_path, physical_activities, quizzes
from .api import api_login_required, error_response, json_body, validation_message
from .auth_forms import EmailLoginForm, SignupForm
from .blogs import get_blog_by_slug, get_blogs
from .forms import SoloSessionRequestForm
from .models import DayGame, Game, GroupSession, LearningDay, SubscriptionType
from .permissions import is_admin, profile_for
from .serializers import (
    attempt_to_dict, learning_day_to_dict, progress_to_dict, session_to_dict,
    solo_request_to_dict, video_to_dict,
)
from .stripe_checkout import PaymentProviderError
from .subscriptions import (
    get_user_active_subscriptions, has_active_subscription, has_subscription_type,
    subscription_required,
)

logger = logging.getLogger(__name__)

BLOGS_PER_PAGE = 9


def home(request):
    """Landing page - families who are signed in go straight to their dashboard"""
    if request.user.is_authenticated:
        return redirect('dashboard')
    return render(request, 'movokids/home.html')


@login_required
def dashboard(request):
    """The child's home: where they are on the path and today's movement."""
    context = {
        'profile': profile_for(request.user),
        'path_stats': learning_path.get_user_learning_path_stats(request.user),
        'activity_stats': physical_activities.get_user_physical_activity_stats(request.user),
        'subscriptions': get_user_active_subscriptions(request.user),
        'has_subscription': has_active_subscription(request.user),
        'is_admin': is_admin(request.user),
    }
    return render(request, 'movokids/dashboard.html', context)


# ================================
# AUTHENTICATION
# ================================

def register_view(request):
    """
    Parent signs up for their child.
    If they took the onboarding quiz first, its scores go onto the new profile.
    Logs them straight in afterwards.
    """
    if request.user.is_authenticated:
        return redirect('dashboard')

    pending_quiz = request.session.get(quizzes.PENDING_QUIZ_SESSION_KEY)
    if request.method == 'POST':
        form = SignupForm(request.POST, pending_quiz=pending_quiz)
        if form.is_valid():
            user = form.save()
            request.session.pop(quizzes.PENDING_QUIZ_SESSION_KEY, None)
            login(request, user)
            child = form.cleaned_data.get('child_first_name')
            messages.success(request, f'Welcome to MovoKids, {child}! 🎉')
            return redirect('dashboard')
    else:
        form = SignupForm(pending_quiz=pending_quiz)

    return render(request, 'registration/register.html', {'form': form, 'has_quiz_result': bool(pending_quiz)})


def custom_login_view(request):
    if request.user.is_authenticated:
        return redirect('dashboard')

    if request.method == 'POST':
        form = EmailLoginForm(request, data=request.POST)
        if form.is_valid():
            user = form.get_user()
            login(request, user)
            name = profile_for(user).parent_first_name or user.email
            messages.success(request, f'Welcome back, {name}! 👋')
            next_url = request.POST.get('next') or request.GET.get('next')
            if next_url and next_url.startswith('/') and not next_url.startswith('//'):
                return redirect(next_url)
            return redirect('dashboard')
        messages.error(request, 'Invalid email or password. Please try again.')
    else:
        form = EmailLoginForm(request)

    return render(request, 'registration/login.html', {'form': form})


def custom_logout_view(request):
    if request.user.is_authenticated:
        logout(request)
        messages.success(request, 'You have been logged out. See you soon! 👋')
    return redirect('home')


@require_GET
def auth_check(request):
    """Lets the browser ask whether the session is still signed in."""
    if request.user.is_authenticated:
        return JsonResponse({'authenticated': True, 'userId': request.user.pk})
    return JsonResponse({'authenticated': False, 'userId': None})


# ================================
# ONBOARDING QUIZ
# ================================

def _answers_from_request(request):
    if request.content_type == 'application/json':
        return json_body(request).get('answers') or {}
    return {
        key[2:]: value for key, value in request.POST.items() if key.startswith('q_')
    }


def quiz(request):
    """
    The onboarding questionnaire.
    The result waits in the session until signup, or goes straight onto the
    profile when the parent is already signed in.
    """
    questions = quizzes.get_initial_quiz()

    if request.method == 'POST':
        try:
            answers = _answers_from_request(request)
        except ValidationError as e:
            return error_response(validation_message(e))

        result = quizzes.score_answers(questions, answers)
        if request.user.is_authenticated:
            profile = profile_for(request.user)
            quizzes.apply_quiz_result(profile, result).save()
        else:
            request.session[quizzes.PENDING_QUIZ_SESSION_KEY] = result

        if request.content_type == 'application/json':
            return JsonResponse({'success': True, 'result': result})

        messages.success(request, f"Thanks! Your child's score is {result['score']} out of {result['max_score']}.")
        return redirect('dashboard' if request.user.is_authenticated else 'register')

    context = {
        'questions': questions,
        'options': list(enumerate(quizzes.OPTION_LABELS)),
    }
    return render(request, 'movokids/quiz.html', context)


# ================================
# LEARNING PATH
# ================================

@subscription_required
def learning_path_view(request):
    """All days of the path, with which ones the calendar has unlocked so far."""
    learning_path.initialize_learning_path_start_date(request.user)
    available_day = learning_path.get_available_day_by_time(request.user)
    progress_by_day = {p.learning_day_id: p for p in learning_path.get_user_all_day_progress(request.user)}

    days = []
    for day in learning_path.get_learning_days():
        days.append({
            'day': day,
            'progress': progress_by_day.get(day.id),
            'is_unlocked': day.day_number <= available_day,
            'availability': learning_path.get_day_availability(request.user, day.day_number),
        })

    context = {
        'days': days,
        'stats': learning_path.get_user_learning_path_stats(request.user),
        'available_day': available_day,
    }
    return render(request, 'movokids/learning_path.html', context)


@subscription_required
def learning_day_view(request, day_number):
    availability = learning_path.get_day_availability(request.user, day_number)
    if not availability['can_access']:
        messages.info(
            request,
            f"Day {day_number} opens on {availability['available_date']:%B %d}. Come back then! ⏰"
        )
        return redirect('learning_path')

    details = learning_path.get_day_progress_details(request.user, day_number)
    if details is None:
        raise Http404("Learning day not found")

    return render(request, 'movokids/learning_day.html', details)


@require_POST
@api_login_required
def record_attempt_api(request):
    """The browser reports one finished game."""
    if not has_active_subscription(request.user):
        return error_response('An active subscription is required', status=403)

    try:
        data = json_body(request)
        day = LearningDay.objects.filter(pk=data.get('learning_day_id'), is_active=True).first()
        game = Game.objects.filter(pk=data.get('game_id'), is_active=True).first()
        if day is None or game is None:
            return error_response('Game or day not found', status=404)
        if not learning_path.can_access_day(request.user, day.day_number):
            return error_response('This day is not available yet', status=403)

        day_games = DayGame.objects.filter(learning_day=day, game=game)
        if data.get('day_game_id'):
            day_games = day_games.filter(pk=data['day_game_id'])
        day_game = day_games.order_by('order_in_day').first()
        if day_game is None:
            return error_response('This game is not part of the day')

        attempt = learning_path.record_game_attempt(
            request.user, game, day,
            is_correct=bool(data.get('is_correct')),
            score=int(data.get('score') or 0),
            day_game=day_game,
            time_taken_seconds=data.get('time_taken_seconds'),
            mistakes_count=int(data.get('mistakes_count') or 0),
            game_data=data.get('game_data') or {},
        )
    except ValidationError as e:
        return error_response(validation_message(e))
    except (TypeError, ValueError):
        return error_response('Invalid attempt data')

    progress = learning_path.get_user_day_progress(request.user, day)
    return JsonResponse({
        'success': True,
        'attempt': attempt_to_dict(attempt),
        'progress': progress_to_dict(progress),
    })


@require_POST
@api_login_required
def reset_day_api(request, day_number):
    if not has_active_subscription(request.user):
        return error_response('An active subscription is required', status=403)
    day = get_object_or_404(LearningDay, day_number=day_number, is_active=True)
    if not learning_path.can_access_day(request.user, day.day_number):
        return error_response('This day is not available yet', status=403)
    learning_path.reset_day_progress(request.user, day)
    return JsonResponse({'success': True})


@require_GET
@api_login_required
def learning_path_stats_api(request):
    stats = learning_path.get_user_learning_path_stats(request.user)
    last_played = stats['last_played_at']
    return JsonResponse({
        'totalDays': stats['total_days'],
        'completedDays': stats['completed_days'],
        'currentDay': stats['current_day'],
        'totalGamesPlayed': stats['total_games_played'],
        'totalGamesCompleted': stats['total_games_completed'],
        'averageScore': stats['average_score'],
        'totalTimePlayed': stats['total_time_played'],
        'streak': stats['streak'],
        'lastPlayedAt': last_played.isoformat() if last_played else None,
    })


@require_GET
@api_login_required
def day_details_api(request, day_number):
    availability = learning_path.get_day_availability(request.user, day_number)
    available_date = availability['available_date']
    payload = {
        'canAccess': availability['can_access'],
        'reason': availability['reason'],
        'availableDate': available_date.isoformat() if available_date else None,
    }
    if not availability['can_access']:
        return JsonResponse(payload, status=403)

    details = learning_path.get_day_progress_details(request.user, day_number)
    if details is None:
        return error_response('Learning day not found', status=404)

    payload.update({
        'day': learning_day_to_dict(details['day']),
        'progress': progress_to_dict(details['progress']),
        'games': [
            {
                'day_game_id': item['day_game'].id,
                'order_in_day': item['day_game'].order_in_day,
                'game': {
                    'id': item['game'].id,
                    'type': item['game'].type,
                    'name': item['game'].name,
                    'name_ar': item['game'].name_ar,
                    'difficulty_level': item['game'].difficulty_level,
                    'config': item['game'].config,
                },
                'attempts': [attempt_to_dict(a) for a in item['attempts']],
                'is_completed': item['is_completed'],
            }
            for item in details['games']
        ],
    })
    return JsonResponse(payload)


@require_GET
@api_login_required
def game_leaderboard_api(request, game_id):
    game = get_object_or_404(Game, pk=game_id)
    entries = []
    for rank, attempt in enumerate(learning_path.get_game_leaderboard(game), start=1):
        profile = getattr(attempt.user, 'profile', None)
        entries.append({
            'rank': rank,
            'score': attempt.score,
            'time_taken_seconds': attempt.time_taken_seconds,
            'child_first_name': profile.child_first_name if profile else '',
            'child_last_name': profile.child_last_name if profile else '',
        })
    return JsonResponse({'success': True, 'leaderboard': entries})


# ================================
# PHYSICAL ACTIVITIES
# ================================

@login_required
def physical_activities_view(request):
    today = physical_activities.get_todays_physical_activity(request.user)
    videos = [
        {'video': video, 'url': default_storage.url(video.storage_path),
         'watched': video.video_number in today['watched_video_numbers']}
        for video in today['available_videos']
    ]
    context = {
        'videos': videos,
        'today': today,
        'stats': physical_activities.get_user_physical_activity_stats(request.user),
    }
    return render(request, 'movokids/physical_activities.html', context)


@require_POST
@api_login_required
def record_watch_api(request):
    try:
        data = json_body(request)
        progress = physical_activities.record_physical_activity_watch(
            request.user,
            int(data.get('video_number')),
            watch_duration_seconds=data.get('watch_duration_seconds'),
        )
    except ValidationError as e:
        return error_response(validation_message(e), status=404)
    except (TypeError, ValueError):
        return error_response('Invalid video number')

    return JsonResponse({'success': True, 'id': progress.id, 'watched_at': progress.watched_at.isoformat()})


@require_GET
@api_login_required
def physical_activity_stats_api(request):
    stats = physical_activities.get_user_physical_activity_stats(request.user)
    return JsonResponse({
        'totalVideosWatched': stats['total_videos_watched'],
        'currentVideoNumber': stats['current_video_number'],
        'streak': stats['streak'],
        'lastWatchedAt': stats['last_watched_at'].isoformat() if stats['last_watched_at'] else None,
        'totalWatchTime': stats['total_watch_time'],
        'startedAt': stats['started_at'].isoformat() if stats['started_at'] else None,
    })


@require_GET
@api_login_required
def todays_videos_api(request):
    today = physical_activities.get_todays_physical_activity(request.user)
    return JsonResponse({
        'videos': [
            {**video_to_dict(video), 'url': default_storage.url(video.storage_path)}
            for video in today['available_videos']
        ],
        'watchedVideoNumbers': today['watched_video_numbers'],
        'totalVideosWatched': today['total_videos_watched'],
        'totalVideosAvailable': today['total_videos_available'],
    })


# ================================
# COACHING SESSIONS
# ================================

def _can_join_paid_sessions(user):
    return is_admin(user) or has_subscription_type(user, SubscriptionType.GROUP_SESSIONS)


@login_required
def sessions_view(request):
    """Group sessions, plus the family's 1:1 requests. Without a package only free sessions show."""
    sessions = coaching.get_sessions(request.user, coach_id=request.GET.get('coach') or None)
    has_package = _can_join_paid_sessions(request.user)
    if not has_package:
        sessions = [s for s in sessions if s.is_free]

    context = {
        'sessions': sessions,
        'has_group_package': has_package,
        'solo_requests': coaching.get_my_solo_session_requests(request.user),
        'solo_form': SoloSessionRequestForm(),
    }
    return render(request, 'movokids/sessions.html', context)


@require_POST
@login_required
def session_enroll(request, pk):
    session = get_object_or_404(GroupSession, pk=pk)
    wants_json = request.headers.get('Accept') == 'application/json'

    try:
        if not session.is_free and not _can_join_paid_sessions(request.user):
            raise ValidationError("An active group sessions package is required")
        coaching.enroll_in_session(request.user, session)
    except ValidationError as e:
        if wants_json:
            return error_response(validation_message(e))
        messages.error(request, validation_message(e))
        return redirect('sessions')

    if wants_json:
        return JsonResponse({'success': True})
    messages.success(request, f'🎉 You are in! See you at "{session.title}".')
    return redirect('sessions')


@require_POST
@login_required
def session_cancel(request, pk):
    session = get_object_or_404(GroupSession, pk=pk)
    coaching.cancel_enrollment(request.user, session)
    if request.headers.get('Accept') == 'application/json':
        return JsonResponse({'success': True})
    messages.success(request, f'Your place in "{session.title}" has been cancelled.')
    return redirect('sessions')


@require_GET
@api_login_required
def sessions_api(request):
    sessions = coaching.get_sessions(
        request.user,
        coach_id=request.GET.get('coach_id') or None,
        date_from=request.GET.get('date_from') or None,
        date_to=request.GET.get('date_to') or None,
        include_past=request.GET.get('include_past') == 'true',
    )
    if not _can_join_paid_sessions(request.user):
        sessions = [s for s in sessions if s.is_free]
    return JsonResponse({'success': True, 'sessions': [session_to_dict(s) for s in sessions]})


@login_required
def solo_sessions_view(request):
    if request.method == 'POST':
        form = SoloSessionRequestForm(request.POST)
        if form.is_valid():
            try:
                coaching.create_solo_session_request(request.user, **form.cleaned_data)
            except ValidationError as e:
                messages.error(request, validation_message(e))
            else:
                messages.success(request, "📅 Request sent! We'll get back to you soon.")
                return redirect('solo_sessions')
    else:
        form = SoloSessionRequestForm()

    context = {
        'form': form,
        'requests': coaching.get_my_solo_session_requests(request.user),
    }
    return render(request, 'movokids/solo_sessions.html', context)


@require_GET
@api_login_required
def my_solo_requests_api(request):
    return JsonResponse({
        'success': True,
        'requests': [solo_request_to_dict(r) for r in coaching.get_my_solo_session_requests(request.user)],
    })


@require_POST
@api_login_required
def solo_session_pay(request, pk):
    """Start paying for a request the coach has accepted."""
    try:
        data = json_body(request)
        is_egypt = data.get('is_egypt')
        if isinstance(is_egypt, str):
            is_egypt = is_egypt.lower() == 'true'
        result = coaching.initiate_solo_session_payment(
            request.user, pk,
            is_egypt=is_egypt,
            ip_address=request.META.get('REMOTE_ADDR'),
            base_url=request.build_absolute_uri('/'),
        )
    except ValidationError as e:
        return error_response(validation_message(e))
    except PaymentProviderError as e:
        logger.error("Checkout could not be opened for solo request %s: %s", pk, e)
        return error_response('Payment provider is unavailable, please try again', status=502)

    return JsonResponse({
        'success': True,
        'paymentId': result['payment_id'],
        'checkoutUrl': result['checkout_url'],
        'redirectUrl': result['redirect_url'],
    })


# ================================
# BLOG
# ================================

def blog_list(request):
    try:
        page = max(int(request.GET.get('page', 1)) - 1, 0)
    except (TypeError, ValueError):
        page = 0
    search = request.GET.get('search', '')
    result = get_blogs(offset=page, limit=BLOGS_PER_PAGE, search=search)

    total_pages = max((result['rows_count'] + BLOGS_PER_PAGE - 1) // BLOGS_PER_PAGE, 1)
    context = {
        'blogs': result['rows'],
        'error': result['error'],
        'search_query': search,
        'page': page + 1,
        'total_pages': total_pages,
        'has_next': page + 1 < total_pages,
        'has_previous': page > 0,
    }
    return render(request, 'blogs/list.html', context)


def blog_detail(request, slug):
    blog = get_blog_by_slug(slug)
    if blog is None:
        raise Http404("Blog not found")
    return render(request, 'blogs/detail.html', {'blog': blog})
