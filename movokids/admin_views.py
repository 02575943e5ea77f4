"""
Back-office: analytics pages and the JSON endpoints the admin screens use
to manage content, sessions, 1:1 requests and the blog.
"""
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, render
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from . import analytics, blogs, coaching, content
from .api import api_admin_required, error_response, form_data, json_body, validation_message
from .forms import (
    BlogForm, DayGameForm, GameForm, LearningDayForm, PhysicalActivityVideoForm,
    SoloSessionResponseForm,
)
from .models import (
    Blog, ChildProfile, DayGame, Game, GroupSession, LearningDay, PhysicalActivityVideo,
    SoloSessionRequest,
)
from .permissions import admin_required
from .serializers import (
    blog_to_dict, day_game_to_dict, game_to_dict, learning_day_to_dict, profile_to_dict,
    session_to_dict, solo_request_to_dict, video_to_dict,
)

logger = logging.getLogger(__name__)


def _form_errors(form):
    return JsonResponse({'success': False, 'error': 'Invalid form data', 'errors': form.errors}, status=400)


def _save_form(form_class, data, serialize, instance=None, status=200):
    """Validate a JSON payload with a ModelForm and return the saved object as JSON."""
    form = form_class(form_data(data), instance=instance)
    if not form.is_valid():
        return _form_errors(form)
    obj = form.save()
    return JsonResponse({'success': True, 'item': serialize(obj)}, status=status)


def _update_data(instance, form_class, data):
    """Partial updates: start from the current values, overlay what was sent."""
    current = {
        name: getattr(instance, f'{name}_id' if name in ('learning_day', 'game') else name)
        for name in form_class._meta.fields
    }
    current.update(data)
    return current


# ================================
# BACK-OFFICE PAGES
# ================================

@admin_required
def backoffice_dashboard(request):
    context = {
        'stats': analytics.get_dashboard_stats(),
        'users': analytics.get_all_users(),
        'quiz': analytics.get_quiz_analytics(),
    }
    return render(request, 'backoffice/dashboard.html', context)


@admin_required
def backoffice_user_detail(request, pk):
    profile = get_object_or_404(ChildProfile.objects.select_related('user'), pk=pk)
    return render(request, 'backoffice/user_detail.html', analytics.get_user_details(profile))


# ================================
# ANALYTICS API
# ================================

@require_GET
@api_admin_required
def stats_api(request):
    stats = analytics.get_dashboard_stats()
    return JsonResponse({
        'totalUsers': stats['total_users'],
        'totalAdmins': stats['total_admins'],
        'activeUsers': stats['active_users'],
        'totalLearningDaysCompleted': stats['total_learning_days_completed'],
        'avgCompletionRate': stats['avg_completion_rate'],
    })


@require_GET
@api_admin_required
def users_api(request):
    rows = []
    for row in analytics.get_all_users():
        rows.append({
            **profile_to_dict(row['profile']),
            'completed_days': row['completed_days'],
            'total_games_completed': row['total_games_completed'],
            'overall_avg_score': row['overall_avg_score'],
            'total_time_spent': row['total_time_spent'],
        })
    return JsonResponse({'success': True, 'users': rows})


@require_GET
@api_admin_required
def user_detail_api(request, pk):
    profile = ChildProfile.objects.select_related('user').filter(pk=pk).first()
    if profile is None:
        return error_response('User not found', status=404)

    details = analytics.get_user_details(profile)
    return JsonResponse({
        'user': profile_to_dict(profile),
        'progress': [
            {
                'learning_day': learning_day_to_dict(item['learning_day']),
                'is_completed': item['progress'].is_completed,
                'completed_at': item['progress'].completed_at.isoformat() if item['progress'].completed_at else None,
                'games_correct_count': item['progress'].games_correct_count,
                'games_completed': item['games_completed'],
                'time_spent': item['time_spent'],
                'average_score': item['average_score'],
            }
            for item in details['progress']
        ],
    })


@require_GET
@api_admin_required
def quiz_analytics_api(request):
    quiz = analytics.get_quiz_analytics()
    return JsonResponse({
        'avgInitialScore': quiz['avg_initial_score'],
        'totalQuizzesTaken': quiz['total_quizzes_taken'],
        'categoryBreakdown': quiz['category_breakdown'],
    })


# ================================
# CONTENT: DAYS, GAMES, ASSIGNMENTS
# ================================

@require_http_methods(['GET', 'POST'])
@api_admin_required
def days_api(request):
    if request.method == 'GET':
        return JsonResponse({
            'success': True,
            'days': [learning_day_to_dict(d) for d in content.get_all_learning_days()],
        })
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(LearningDayForm, data, learning_day_to_dict, status=201)


@require_http_methods(['POST', 'DELETE'])
@api_admin_required
def day_api(request, pk):
    day = get_object_or_404(LearningDay, pk=pk)
    if request.method == 'DELETE':
        day.delete()
        return JsonResponse({'success': True})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(LearningDayForm, _update_data(day, LearningDayForm, data), learning_day_to_dict, instance=day)


@require_http_methods(['GET', 'POST'])
@api_admin_required
def games_api(request):
    if request.method == 'GET':
        games = content.get_all_games(request.GET.get('type') or None)
        return JsonResponse({'success': True, 'games': [game_to_dict(g) for g in games]})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(GameForm, data, game_to_dict, status=201)


@require_http_methods(['POST', 'DELETE'])
@api_admin_required
def game_api(request, pk):
    game = get_object_or_404(Game, pk=pk)
    if request.method == 'DELETE':
        game.delete()
        return JsonResponse({'success': True})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(GameForm, _update_data(game, GameForm, data), game_to_dict, instance=game)


@require_http_methods(['GET', 'POST'])
@api_admin_required
def day_games_api(request, pk):
    """List a day's games, or put another game on it (at the end unless told otherwise)."""
    day = get_object_or_404(LearningDay, pk=pk)
    if request.method == 'GET':
        return JsonResponse({
            'success': True,
            'day_games': [day_game_to_dict(dg) for dg in content.get_day_games(day)],
        })
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    data = {**data, 'learning_day': day.pk}
    data.setdefault('order_in_day', content.next_order_in_day(day))
    return _save_form(DayGameForm, data, day_game_to_dict, status=201)


@require_http_methods(['POST', 'DELETE'])
@api_admin_required
def day_game_api(request, pk):
    day_game = get_object_or_404(DayGame.objects.select_related('game'), pk=pk)
    if request.method == 'DELETE':
        day_game.delete()
        return JsonResponse({'success': True})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(
        DayGameForm, _update_data(day_game, DayGameForm, data), day_game_to_dict, instance=day_game
    )


@require_POST
@api_admin_required
def reorder_day_games_api(request, pk):
    day = get_object_or_404(LearningDay, pk=pk)
    try:
        orders = json_body(request).get('orders') or []
        day_games = content.reorder_day_games(day, orders)
    except ValidationError as e:
        return error_response(validation_message(e))
    except (KeyError, TypeError, ValueError):
        return error_response('Each entry needs an id and an order_in_day')
    return JsonResponse({'success': True, 'day_games': [day_game_to_dict(dg) for dg in day_games]})


# ================================
# CONTENT: MOVEMENT VIDEOS
# ================================

@require_http_methods(['GET', 'POST'])
@api_admin_required
def videos_api(request):
    if request.method == 'GET':
        return JsonResponse({'success': True, 'videos': [video_to_dict(v) for v in content.get_all_videos()]})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(PhysicalActivityVideoForm, data, video_to_dict, status=201)


@require_http_methods(['POST', 'DELETE'])
@api_admin_required
def video_api(request, pk):
    video = get_object_or_404(PhysicalActivityVideo, pk=pk)
    if request.method == 'DELETE':
        video.delete()
        return JsonResponse({'success': True})
    try:
        data = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))
    return _save_form(
        PhysicalActivityVideoForm, _update_data(video, PhysicalActivityVideoForm, data), video_to_dict,
        instance=video,
    )


# ================================
# SESSIONS & 1:1 REQUESTS
# ================================

@require_GET
@api_admin_required
def admin_sessions_api(request):
    return JsonResponse({
        'success': True,
        'sessions': [session_to_dict(s) for s in coaching.get_admin_sessions()],
    })


@require_GET
@api_admin_required
def session_enrollments_api(request, pk):
    session = get_object_or_404(GroupSession, pk=pk)
    rows = coaching.get_session_enrollments(session)
    for row in rows:
        row['created_at'] = row['created_at'].isoformat()
    return JsonResponse({'success': True, 'enrollments': rows})


@require_GET
@api_admin_required
def solo_requests_api(request):
    status = request.GET.get('status') or None
    if status and status not in SoloSessionRequest.Status.values:
        return error_response('Invalid status')

    rows = []
    for row in coaching.get_admin_solo_session_requests(request.user, status=status):
        rows.append({
            **solo_request_to_dict(row['request']),
            'child_name': row['child_name'],
            'parent_name': row['parent_name'],
            'parent_phone': row['parent_phone'],
            'email': row['email'],
            'responder_name': row['responder_name'],
            'responder_email': row['responder_email'],
        })
    return JsonResponse({'success': True, 'requests': rows})


@require_POST
@api_admin_required
def respond_solo_request_api(request, pk):
    solo_request = get_object_or_404(SoloSessionRequest, pk=pk)
    try:
        form = SoloSessionResponseForm(form_data(json_body(request)))
        if not form.is_valid():
            return _form_errors(form)
        solo_request = coaching.respond_solo_session_request(request.user, solo_request, **form.cleaned_data)
    except ValidationError as e:
        return error_response(validation_message(e))
    return JsonResponse({'success': True, 'request': solo_request_to_dict(solo_request)})


# ================================
# BLOG
# ================================

@require_http_methods(['GET', 'POST'])
@api_admin_required
def admin_blogs_api(request):
    if request.method == 'GET':
        try:
            page = max(int(request.GET.get('page', 0)), 0)
            limit = min(max(int(request.GET.get('limit', 10)), 1), 100)
        except (TypeError, ValueError):
            return error_response('page and limit must be numbers')
        result = blogs.get_blogs(
            offset=page,
            limit=limit,
            search=request.GET.get('search', ''),
        )
        if result['error']:
            return error_response(result['error'], status=500)
        return JsonResponse({
            'rows': [blog_to_dict(b) for b in result['rows']],
            'rowsCount': result['rows_count'],
        })

    try:
        form = BlogForm(form_data(json_body(request)))
        if not form.is_valid():
            return _form_errors(form)
        blog = blogs.create_blog(**form.cleaned_data)
    except ValidationError as e:
        return error_response(validation_message(e))
    return JsonResponse({'success': True, 'blog': blog_to_dict(blog)}, status=201)


@require_POST
@api_admin_required
def admin_blog_api(request, slug):
    blog = get_object_or_404(Blog, slug=slug)
    try:
        data = json_body(request)
        changes = {name: data[name] for name in blogs.EDITABLE_FIELDS if name in data}
        blog = blogs.update_blog(blog, **changes)
    except ValidationError as e:
        return error_response(validation_message(e))
    return JsonResponse({'success': True, 'blog': blog_to_dict(blog)})


@require_POST
@api_admin_required
def blog_delete_api(request):
    try:
        slug = json_body(request).get('slug')
    except ValidationError as e:
        return error_response(validation_message(e))
    if not slug:
        return error_response('Missing slug')
    blog = Blog.objects.filter(slug=slug).first()
    if blog is None:
        return error_response('Blog not found', status=404)
    blogs.delete_blog(blog)
    return JsonResponse({'success': True})


@require_POST
@api_admin_required
def blog_upload_api(request):
    try:
        uploaded = blogs.upload_blog_image(request.FILES.get('file'))
    except ValidationError as e:
        return error_response(validation_message(e))
    except OSError:
        logger.exception("Blog image upload failed")
        return error_response('Failed to upload image', status=500)
    return JsonResponse(uploaded)
