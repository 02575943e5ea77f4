"""
Coaching: group sessions children enroll in, and 1:1 sessions parents
request, an admin schedules and the parent pays for.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Exists, OuterRef
from django.utils import timezone

from .models import GroupSession, SessionEnrollment, SoloSessionRequest, SubscriptionType
from .payments import create_payment
from .permissions import is_super_admin
from .pricing import detect_is_egypt, solo_session_price

logger = logging.getLogger(__name__)

# Response value that keeps a paid request paid while the admin edits its details
EDIT_STATUS = 'edit'


# ================================
# GROUP SESSIONS
# ================================

def _sessions_with_counts():
    return GroupSession.objects.select_related('coach').annotate(enrollment_count=Count('enrollments'))


def get_sessions(user=None, coach_id=None, date_from=None, date_to=None, include_past=False, now=None):
    """
    Upcoming sessions, soonest first, each with `enrollment_count`
    and (for a signed-in user) `is_enrolled`.
    """
    sessions = _sessions_with_counts()
    if coach_id:
        sessions = sessions.filter(coach_id=coach_id)
    if not include_past:
        sessions = sessions.filter(session_date__gte=now or timezone.now())
    if date_from:
        sessions = sessions.filter(session_date__gte=date_from)
    if date_to:
        sessions = sessions.filter(session_date__lte=date_to)

    if user is not None and user.is_authenticated:
        sessions = sessions.annotate(
            is_enrolled=Exists(
                SessionEnrollment.objects.filter(session=OuterRef('pk'), user=user)
            )
        )
    return list(sessions.order_by('session_date'))


def get_admin_sessions():
    """Every session, newest first, for the back-office."""
    return list(_sessions_with_counts().order_by('-session_date'))


def enroll_in_session(user, session, now=None):
    now = now or timezone.now()
    if session.session_date < now:
        raise ValidationError("Cannot enroll in past sessions")

    enrollments = SessionEnrollment.objects.filter(session=session)
    if enrollments.filter(user=user).exists():
        raise ValidationError("Already enrolled")
    if enrollments.count() >= session.max_participants:
        raise ValidationError("Session is full")

    try:
        with transaction.atomic():
            enrollment = SessionEnrollment.objects.create(session=session, user=user)
    except IntegrityError:
        # Double submit
        raise ValidationError("Already enrolled")

    logger.info("User %s enrolled in session %s", user.pk, session.pk)
    return enrollment


def cancel_enrollment(user, session):
    deleted, _ = SessionEnrollment.objects.filter(session=session, user=user).delete()
    return deleted > 0


def get_session_enrollments(session):
    """Who is coming, with the parent contact details coaches need."""
    rows = []
    enrollments = (
        SessionEnrollment.objects.filter(session=session)
        .select_related('user__profile')
        .order_by('created_at')
    )
    for enrollment in enrollments:
        profile = getattr(enrollment.user, 'profile', None)
        rows.append({
            'created_at': enrollment.created_at,
            'email': enrollment.user.email,
            'child_first_name': profile.child_first_name if profile else '',
            'child_last_name': profile.child_last_name if profile else '',
            'child_profile_picture': profile.child_profile_picture if profile else '',
            'parent_first_name': profile.parent_first_name if profile else '',
            'parent_last_name': profile.parent_last_name if profile else '',
            'parent_phone': profile.parent_phone if profile else '',
        })
    return rows


# ================================
# 1:1 SESSIONS
# ================================

def create_solo_session_request(user, coach=None, preferred_time=None, notes='', contact_phone=''):
    """A family may only have one request in flight at a time."""
    open_request = (
        SoloSessionRequest.objects.filter(
            user=user,
            status__in=[SoloSessionRequest.Status.PENDING, SoloSessionRequest.Status.PAYMENT_PENDING],
        )
        .order_by('created_at')
        .first()
    )
    if open_request is not None:
        if open_request.status == SoloSessionRequest.Status.PENDING:
            raise ValidationError(
                "You already have a pending session request. "
                "Please wait for it to be processed before creating a new one."
            )
        raise ValidationError(
            "You already have a session request awaiting payment. "
            "Please complete the payment for your existing request before creating a new one."
        )

    request = SoloSessionRequest.objects.create(
        user=user,
        coach=coach,
        preferred_time=preferred_time,
        duration_minutes=SoloSessionRequest.DEFAULT_DURATION_MINUTES,
        notes=notes or '',
        contact_phone=contact_phone or '',
        status=SoloSessionRequest.Status.PENDING,
    )
    logger.info("User %s requested solo session %s", user.pk, request.pk)
    return request


def get_my_solo_session_requests(user):
    return list(
        SoloSessionRequest.objects.filter(user=user).select_related('coach').order_by('-created_at')
    )


def get_admin_solo_session_requests(admin_user, status=None):
    """
    All requests for the back-office, newest first.
    Parent phone numbers and emails are only shown to super admins.
    """
    show_contact = is_super_admin(admin_user)
    requests_qs = SoloSessionRequest.objects.select_related(
        'coach', 'user__profile', 'responded_by__profile'
    ).order_by('-created_at')
    if status:
        requests_qs = requests_qs.filter(status=status)

    rows = []
    for request in requests_qs:
        profile = getattr(request.user, 'profile', None)
        responder = request.responded_by
        rows.append({
            'request': request,
            'child_name': profile.child_full_name if profile else '',
            'parent_name': profile.parent_full_name if profile else '',
            'parent_phone': (profile.parent_phone if profile else '') if show_contact else None,
            'email': request.user.email if show_contact else None,
            'responder_name': responder.get_full_name() or responder.username if responder else None,
            'responder_email': responder.email if responder and show_contact else None,
        })
    return rows


def respond_solo_session_request(admin_user, request, status, meeting_link=None,
                                 admin_reason=None, scheduled_time=None, now=None):
    """
    Approve, reject or ask for payment. Only the parent's payment can mark a
    request paid, and once paid it stays paid whatever the admin edits.
    """
    if status == SoloSessionRequest.Status.PAID and request.status != SoloSessionRequest.Status.PAID:
        raise ValidationError("Only the child payment can mark this as paid")

    final_status = status
    if request.status == SoloSessionRequest.Status.PAID or status == EDIT_STATUS:
        final_status = SoloSessionRequest.Status.PAID
    elif status not in SoloSessionRequest.Status.values:
        raise ValidationError("Invalid status")

    needs_link = {SoloSessionRequest.Status.APPROVED, SoloSessionRequest.Status.PAYMENT_PENDING}
    if final_status in needs_link and not meeting_link:
        raise ValidationError("Meeting link is required")

    # Editing a paid request only changes what was sent
    editing = final_status == SoloSessionRequest.Status.PAID
    request.status = final_status
    request.meeting_link = meeting_link or (request.meeting_link if editing else '')
    request.admin_reason = admin_reason or (request.admin_reason if editing else '')
    request.scheduled_time = scheduled_time or (request.scheduled_time if editing else None)
    request.responded_at = now or timezone.now()
    request.responded_by = admin_user
    request.save()
    logger.info("Admin %s set solo request %s to %s", admin_user.pk, request.pk, final_status)
    return request


def initiate_solo_session_payment(user, request_id, is_egypt=None, ip_address=None, base_url=None):
    request = SoloSessionRequest.objects.filter(pk=request_id, user=user).first()
    if request is None:
        raise ValidationError("Request not found")
    if request.status != SoloSessionRequest.Status.PAYMENT_PENDING:
        raise ValidationError("This request is not awaiting payment")

    if is_egypt is None:
        is_egypt = detect_is_egypt(ip_address)
    amount, currency = solo_session_price(is_egypt)

    result = create_payment(
        user,
        SubscriptionType.INDIVIDUAL_SESSION,
        amount,
        currency,
        solo_session_request_id=request.pk,
        base_url=base_url,
    )
    redirect_url = (
        f"/payment/checkout/?paymentId={result['payment_id']}&soloSessionRequestId={request.pk}"
        f"&subscriptionType={SubscriptionType.INDIVIDUAL_SESSION}&amount={amount}&currency={currency}"
    )
    return {
        'success': True,
        'payment_id': result['payment_id'],
        'checkout_url': result['checkout_url'],
        'redirect_url': redirect_url,
    }
