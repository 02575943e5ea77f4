"""
Payment records and what happens once money arrives.

A payment is created pending, handed to a provider (Stripe Checkout, or
Paymob's iframe for the legacy flow), and fulfilled from the provider's
webhook or redirect: packages become a one-month subscription, 1:1
sessions become (or settle) a solo session request.
"""
import json
import logging

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from . import paymob
from .models import Payment, SoloSessionRequest, Subscription, SubscriptionType
from .permissions import profile_for
from .stripe_checkout import create_checkout_session
from .subscriptions import ACCESS_TYPES

logger = logging.getLogger(__name__)

SUBSCRIPTION_PERIOD = relativedelta(months=1)

LINE_ITEM_LABELS = {
    SubscriptionType.INDIVIDUAL_SESSION: '1:1 Session - MovoKids',
    SubscriptionType.GAMES: 'Games Package - MovoKids',
    SubscriptionType.GROUP_SESSIONS: 'Group Sessions Package - MovoKids',
}

PROVIDER_STRIPE = 'stripe'
PROVIDER_PAYMOB = 'paymob'

SOLO_DETAIL_KEYS = ('coach_id', 'preferred_time', 'contact_phone', 'notes')


# ================================
# CREATING PAYMENTS
# ================================

def _validate_payment_request(subscription_type, amount, currency, package_id,
                              solo_session_request_id, solo_request_details):
    if subscription_type not in SubscriptionType.values:
        raise ValidationError("Invalid subscription type")

    if subscription_type == SubscriptionType.INDIVIDUAL_SESSION:
        details = solo_request_details or {}
        has_request = solo_session_request_id is not None
        has_details = bool(details.get('preferred_time') and details.get('contact_phone'))
        if not has_request and not has_details:
            raise ValidationError(
                "For an individual session provide either an existing request "
                "or the preferred time and contact phone for a new one"
            )
        if not amount or not currency:
            raise ValidationError("Missing amount or currency")
    elif not package_id or not amount or not currency:
        raise ValidationError("Missing required fields: package, amount, currency")


def _payment_metadata(subscription_type, amount, currency, package_id,
                      solo_session_request_id, solo_request_details):
    metadata = {
        'subscription_type': subscription_type,
        'original_currency': currency,
        'original_amount': str(amount),
    }
    if subscription_type == SubscriptionType.INDIVIDUAL_SESSION:
        if solo_session_request_id is not None:
            metadata['solo_session_request_id'] = solo_session_request_id
        else:
            for key in SOLO_DETAIL_KEYS:
                if solo_request_details.get(key) not in (None, ''):
                    metadata[key] = solo_request_details[key]
    elif package_id is not None:
        metadata['package_id'] = package_id
    return metadata


def _billing_data(user):
    profile = profile_for(user)
    return {
        'first_name': profile.parent_first_name or profile.child_first_name or 'NA',
        'last_name': profile.parent_last_name or profile.child_last_name or 'NA',
        'email': user.email or 'NA',
        'phone_number': profile.parent_phone or 'NA',
        'apartment': 'NA', 'floor': 'NA', 'street': 'NA', 'building': 'NA',
        'city': 'NA', 'country': 'NA', 'state': 'NA', 'postal_code': 'NA',
        'shipping_method': 'NA',
    }


def create_payment(user, subscription_type, amount, currency, package_id=None,
                   solo_session_request_id=None, solo_request_details=None,
                   base_url=None, provider=PROVIDER_STRIPE):
    """
    Record a pending payment and open the provider checkout for it.

    Returns {'success', 'payment_id', 'checkout_url', 'session_id'} where
    checkout_url is Stripe's hosted page or Paymob's iframe.
    """
    _validate_payment_request(subscription_type, amount, currency, package_id,
                              solo_session_request_id, solo_request_details)
    currency = currency.upper()
    is_individual = subscription_type == SubscriptionType.INDIVIDUAL_SESSION
    metadata = _payment_metadata(subscription_type, amount, currency, package_id,
                                 solo_session_request_id, solo_request_details or {})

    payment = Payment.objects.create(
        user=user,
        amount=amount,
        currency=currency,
        status=Payment.Status.PENDING,
        subscription_type=subscription_type,
        package_id=None if is_individual else package_id,
        payment_method=provider,
        metadata=metadata,
    )
    origin = (base_url or settings.APP_URL).rstrip('/')

    if provider == PROVIDER_PAYMOB:
        intent = paymob.create_payment_intent(
            amount, currency,
            merchant_order_id=f"movokids-{payment.pk}",
            billing_data=_billing_data(user),
            metadata={'payment_id': payment.pk, 'subscription_type': subscription_type},
            base_url=origin,
        )
        payment.paymob_order_id = str(intent['order_id'])
        payment.metadata = {**metadata, 'payment_token': intent['payment_token']}
        payment.save(update_fields=['paymob_order_id', 'metadata', 'updated_at'])
        logger.info("Created Paymob payment %s (order %s)", payment.pk, payment.paymob_order_id)
        return {
            'success': True,
            'payment_id': payment.pk,
            'checkout_url': intent['iframe_url'],
            'session_id': None,
        }

    session_id, checkout_url = create_checkout_session(
        payment_id=payment.pk,
        amount=amount,
        currency=currency,
        customer_email=user.email,
        success_url=f"{origin}/payment/result/?status=success&session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{origin}/payment/result/?status=cancelled",
        metadata={**metadata, 'user_id': user.pk},
        line_item_label=LINE_ITEM_LABELS[subscription_type],
    )
    payment.stripe_checkout_session_id = session_id
    payment.metadata = {
        **metadata,
        'stripe_checkout_session_id': session_id,
        'stripe_checkout_url': checkout_url,
    }
    payment.save(update_fields=['stripe_checkout_session_id', 'metadata', 'updated_at'])
    logger.info("Created Stripe payment %s (session %s)", payment.pk, session_id)

    return {
        'success': True,
        'payment_id': payment.pk,
        'checkout_url': checkout_url,
        'session_id': session_id,
    }


def checkout_url_for(payment):
    """Where to send the parent to finish an existing payment, or None."""
    metadata = payment.metadata or {}
    if metadata.get('stripe_checkout_url'):
        return metadata['stripe_checkout_url']
    if metadata.get('payment_token'):
        return paymob.iframe_url(metadata['payment_token'])
    return None


# ================================
# FULFILMENT
# ================================

def mark_payment_successful(payment, now=None, **fields):
    now = now or timezone.now()
    payment.status = Payment.Status.SUCCESS
    payment.paid_at = fields.pop('paid_at', None) or now
    for name, value in fields.items():
        setattr(payment, name, value)
    payment.save()
    return payment


def handle_successful_payment(payment, now=None):
    """
    Turn a paid package into access. A user holds one active subscription at a time.

    Paying again for the package that is still running extends it by a month;
    any other purchase expires whatever was active and starts a fresh month.
    """
    if payment.subscription_type == SubscriptionType.INDIVIDUAL_SESSION:
        return {'success': True, 'message': 'Individual session - no subscription needed'}
    if payment.subscription_type not in ACCESS_TYPES:
        return {'success': False, 'message': 'Invalid subscription type'}

    now = now or timezone.now()
    with transaction.atomic():
        active = Subscription.objects.select_for_update().filter(
            user_id=payment.user_id, status=Subscription.Status.ACTIVE
        )
        # Lapsed rows the cron job has not caught yet
        active.filter(end_date__lt=now).update(status=Subscription.Status.EXPIRED, updated_at=now)

        current = active.filter(
            subscription_type=payment.subscription_type,
            package_id=payment.package_id,
            end_date__gte=now,
        ).order_by('-created_at').first()

        if current is not None:
            current.end_date = current.end_date + SUBSCRIPTION_PERIOD
            current.payment = payment
            current.save(update_fields=['end_date', 'payment', 'updated_at'])
            active.exclude(pk=current.pk).update(status=Subscription.Status.EXPIRED, updated_at=now)
            logger.info("Extended subscription %s to %s", current.pk, current.end_date)
            return {'success': True, 'message': 'Subscription extended'}

        active.update(status=Subscription.Status.EXPIRED, updated_at=now)
        subscription = Subscription.objects.create(
            user_id=payment.user_id,
            payment=payment,
            subscription_type=payment.subscription_type,
            package_id=payment.package_id,
            status=Subscription.Status.ACTIVE,
            start_date=now,
            end_date=now + SUBSCRIPTION_PERIOD,
            amount=payment.amount,
            currency=payment.currency,
        )
    logger.info("Created subscription %s for payment %s", subscription.pk, payment.pk)
    return {'success': True, 'message': 'Subscription created'}


def _metadata_dict(payment):
    raw = payment.metadata
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Payment %s has unreadable metadata", payment.pk)
            return {}
    return raw if isinstance(raw, dict) else {}


def fulfill_solo_session_payment(payment, now=None):
    """
    Settle a paid 1:1 session.

    New flow: the request details travelled in the payment metadata, so the
    request is created now (once per payment, webhooks may retry).
    Legacy flow: the payment points at an approved request, which becomes paid.
    """
    if payment.subscription_type != SubscriptionType.INDIVIDUAL_SESSION:
        return None
    now = now or timezone.now()
    meta = _metadata_dict(payment)

    if meta.get('coach_id') not in (None, '') or meta.get('preferred_time') or meta.get('contact_phone'):
        existing = SoloSessionRequest.objects.filter(payment=payment).first()
        if existing is not None:
            return existing

        preferred_time = parse_datetime(str(meta['preferred_time'])) if meta.get('preferred_time') else None
        if preferred_time is not None and timezone.is_naive(preferred_time):
            preferred_time = timezone.make_aware(preferred_time)

        coach_id = meta.get('coach_id')
        request = SoloSessionRequest.objects.create(
            user_id=payment.user_id,
            coach_id=int(coach_id) if coach_id not in (None, '') else None,
            preferred_time=preferred_time or now,
            duration_minutes=SoloSessionRequest.DEFAULT_DURATION_MINUTES,
            notes=meta.get('notes') or '',
            contact_phone=meta.get('contact_phone') or '',
            payment=payment,
            status=SoloSessionRequest.Status.PENDING,
        )
        logger.info("Created solo session request %s from payment %s", request.pk, payment.pk)
        return request

    request_id = meta.get('solo_session_request_id')
    if not request_id:
        return None
    updated = SoloSessionRequest.objects.filter(pk=request_id, user_id=payment.user_id).update(
        status=SoloSessionRequest.Status.PAID,
        payment=payment,
        responded_at=now,
        updated_at=now,
    )
    if not updated:
        logger.warning("Payment %s points at missing solo request %s", payment.pk, request_id)
    return SoloSessionRequest.objects.filter(pk=request_id).first()


def fulfill_payment(payment):
    """Everything a successful payment unlocks."""
    result = handle_successful_payment(payment)
    fulfill_solo_session_payment(payment)
    return result


# ================================
# QUERIES FOR THE PARENT
# ================================

def get_user_payments(user):
    return list(Payment.objects.filter(user=user).order_by('-created_at'))


def get_user_subscriptions(user):
    return list(
        Subscription.objects.filter(user=user, status=Subscription.Status.ACTIVE).order_by('-created_at')
    )


def get_payment(user, payment_id):
    return Payment.objects.filter(pk=payment_id, user=user).first()
