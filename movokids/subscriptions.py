"""
Monthly access packages.

Only games and group-session packages grant access; a 1:1 session is a
one-off purchase tracked by its payment.
"""
import logging
from functools import wraps

from django.contrib.auth.views import redirect_to_login
from django.shortcuts import redirect
from django.utils import timezone

from .models import Payment, Subscription, SubscriptionType
from .permissions import is_admin

logger = logging.getLogger(__name__)

ACCESS_TYPES = (SubscriptionType.GAMES, SubscriptionType.GROUP_SESSIONS)


def active_subscriptions(user, now=None):
    now = now or timezone.now()
    return Subscription.objects.filter(
        user=user,
        subscription_type__in=ACCESS_TYPES,
        status=Subscription.Status.ACTIVE,
        end_date__gte=now,
    )


def has_active_subscription(user, now=None):
    """Any running package. Admins always pass."""
    if not user.is_authenticated:
        return False
    if is_admin(user):
        return True
    return active_subscriptions(user, now).exists()


def has_subscription_type(user, subscription_type, now=None):
    if not user.is_authenticated:
        return False
    return active_subscriptions(user, now).filter(subscription_type=subscription_type).exists()


def has_active_package_subscription(user, subscription_type, package_id, now=None):
    if not user.is_authenticated:
        return False
    return active_subscriptions(user, now).filter(
        subscription_type=subscription_type, package_id=package_id
    ).exists()


def get_user_active_subscriptions(user, now=None):
    return list(active_subscriptions(user, now).order_by('-created_at'))


def latest_expired_subscription(user, now=None):
    """Most recent access package whose end date has passed, whatever its status says."""
    now = now or timezone.now()
    return (
        Subscription.objects.filter(
            user=user, subscription_type__in=ACCESS_TYPES, end_date__lt=now
        )
        .order_by('-end_date')
        .first()
    )


def update_expired_subscriptions(now=None):
    """Flip every active subscription past its end date to expired. Returns the count."""
    now = now or timezone.now()
    updated = Subscription.objects.filter(
        status=Subscription.Status.ACTIVE, end_date__lt=now
    ).update(status=Subscription.Status.EXPIRED, updated_at=now)
    if updated:
        logger.info("Expired %s subscription(s)", updated)
    return updated


def has_purchased_individual_session(user):
    return individual_session_purchase_count(user) > 0


def individual_session_purchase_count(user):
    if not user.is_authenticated:
        return 0
    return Payment.objects.filter(
        user=user,
        subscription_type=SubscriptionType.INDIVIDUAL_SESSION,
        status=Payment.Status.SUCCESS,
    ).count()


def subscription_required(view_func):
    """Send visitors to login and non-subscribers to the pricing page."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return redirect_to_login(request.get_full_path())
        if not has_active_subscription(request.user):
            return redirect('pricing')
        return view_func(request, *args, **kwargs)
    return wrapper
