"""
Plain-dict versions of models for the JSON endpoints.
"""


def _iso(value):
    return value.isoformat() if value else None


def coach_to_dict(coach):
    if coach is None:
        return None
    return {
        'id': coach.id,
        'name': coach.name,
        'name_ar': coach.name_ar,
        'title': coach.title,
        'title_ar': coach.title_ar,
        'bio': coach.bio,
        'bio_ar': coach.bio_ar,
        'image_url': coach.image_url,
    }


def game_to_dict(game):
    return {
        'id': game.id,
        'type': game.type,
        'name': game.name,
        'name_ar': game.name_ar,
        'description': game.description,
        'description_ar': game.description_ar,
        'difficulty_level': game.difficulty_level,
        'config': game.config,
        'is_active': game.is_active,
    }


def learning_day_to_dict(day):
    return {
        'id': day.id,
        'day_number': day.day_number,
        'title': day.title,
        'title_ar': day.title_ar,
        'description': day.description,
        'description_ar': day.description_ar,
        'required_correct_games': day.required_correct_games,
        'is_active': day.is_active,
    }


def day_game_to_dict(day_game):
    return {
        'id': day_game.id,
        'learning_day_id': day_game.learning_day_id,
        'order_in_day': day_game.order_in_day,
        'game': game_to_dict(day_game.game),
    }


def attempt_to_dict(attempt):
    return {
        'id': attempt.id,
        'game_id': attempt.game_id,
        'learning_day_id': attempt.learning_day_id,
        'day_game_id': attempt.day_game_id,
        'is_correct': attempt.is_correct,
        'score': attempt.score,
        'time_taken_seconds': attempt.time_taken_seconds,
        'attempt_number': attempt.attempt_number,
        'mistakes_count': attempt.mistakes_count,
        'created_at': _iso(attempt.created_at),
    }


def progress_to_dict(progress):
    if progress is None:
        return None
    return {
        'learning_day_id': progress.learning_day_id,
        'is_completed': progress.is_completed,
        'completed_at': _iso(progress.completed_at),
        'games_correct_count': progress.games_correct_count,
        'current_game_order': progress.current_game_order,
    }


def video_to_dict(video):
    return {
        'id': video.id,
        'video_number': video.video_number,
        'title': video.title,
        'title_ar': video.title_ar,
        'description': video.description,
        'description_ar': video.description_ar,
        'duration_seconds': video.duration_seconds,
        'thumbnail_url': video.thumbnail_url,
        'storage_path': video.storage_path,
        'is_active': video.is_active,
    }


def session_to_dict(session):
    data = {
        'id': session.id,
        'title': session.title,
        'title_ar': session.title_ar,
        'description': session.description,
        'description_ar': session.description_ar,
        'platform': session.platform,
        'session_date': _iso(session.session_date),
        'max_participants': session.max_participants,
        'duration_minutes': session.duration_minutes,
        'is_free': session.is_free,
        'coach': coach_to_dict(session.coach),
        'enrollment_count': getattr(session, 'enrollment_count', 0),
    }
    if hasattr(session, 'is_enrolled'):
        data['is_enrolled'] = session.is_enrolled
        # The link is for enrolled children only
        data['meeting_link'] = session.meeting_link if session.is_enrolled else None
    return data


def solo_request_to_dict(request):
    return {
        'id': request.id,
        'coach': coach_to_dict(request.coach),
        'preferred_time': _iso(request.preferred_time),
        'scheduled_time': _iso(request.scheduled_time),
        'duration_minutes': request.duration_minutes,
        'notes': request.notes,
        'status': request.status,
        'meeting_link': request.meeting_link or None,
        'admin_reason': request.admin_reason or None,
        'responded_at': _iso(request.responded_at),
        'payment_id': request.payment_id,
        'created_at': _iso(request.created_at),
    }


def payment_to_dict(payment):
    return {
        'id': payment.id,
        'amount': str(payment.amount),
        'currency': payment.currency,
        'status': payment.status,
        'payment_method': payment.payment_method,
        'subscription_type': payment.subscription_type,
        'package_id': payment.package_id,
        'paid_at': _iso(payment.paid_at),
        'created_at': _iso(payment.created_at),
    }


def subscription_to_dict(subscription):
    if subscription is None:
        return None
    return {
        'id': subscription.id,
        'subscription_type': subscription.subscription_type,
        'package_id': subscription.package_id,
        'status': subscription.status,
        'start_date': _iso(subscription.start_date),
        'end_date': _iso(subscription.end_date),
        'amount': str(subscription.amount),
        'currency': subscription.currency,
    }


def blog_to_dict(blog):
    return {
        'id': blog.id,
        'slug': blog.slug,
        'title': blog.title,
        'description': blog.description,
        'content': blog.content,
        'thumbnail_url': blog.thumbnail_url or None,
        'created_at': _iso(blog.created_at),
    }


def profile_to_dict(profile):
    return {
        'id': profile.id,
        'user_id': profile.user_id,
        'email': profile.user.email,
        'child_first_name': profile.child_first_name,
        'child_last_name': profile.child_last_name,
        'child_birthday': _iso(profile.child_birthday),
        'child_gender': profile.child_gender,
        'parent_first_name': profile.parent_first_name,
        'parent_last_name': profile.parent_last_name,
        'parent_phone': profile.parent_phone,
        'initial_quiz_score': profile.initial_quiz_score,
        'role': profile.role,
        'created_at': _iso(profile.created_at),
    }
