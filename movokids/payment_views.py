import logging
from datetime import datetime, timezone as dt_timezone
from urllib.parse import urlencode

import stripe
from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from . import paymob
from .api import api_login_required, error_response, json_body, validation_message
from .models import Payment, SubscriptionType
from .payments import (
    PROVIDER_PAYMOB, PROVIDER_STRIPE, checkout_url_for, create_payment, fulfill_payment,
    get_payment, get_user_payments, get_user_subscriptions, mark_payment_successful,
)
from .permissions import is_admin
from .pricing import PACKAGES, detect_is_egypt, get_package, package_price, region
from .serializers import payment_to_dict, subscription_to_dict
from .stripe_checkout import PaymentProviderError, construct_event, get_checkout_session
from .subscriptions import (
    has_subscription_type, individual_session_purchase_count, latest_expired_subscription,
    update_expired_subscriptions,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (Payment.Status.PENDING, Payment.Status.PROCESSING)


# ================================
# PRICING & CHECKOUT PAGES
# ================================

def pricing(request):
    is_egypt = detect_is_egypt(request.META.get('REMOTE_ADDR'))
    packages = []
    for package in PACKAGES:
        amount, currency = package_price(package, is_egypt)
        packages.append({**package, 'amount': amount, 'currency': currency})
    return render(request, 'movokids/pricing.html', {'packages': packages, 'is_egypt': is_egypt})


@login_required
def checkout(request):
    """Confirmation step before handing over to the payment provider."""
    payment = None
    payment_id = request.GET.get('paymentId')
    if payment_id:
        payment = get_payment(request.user, payment_id)

    context = {
        'payment': payment,
        'checkout_url': checkout_url_for(payment) if payment else None,
        'package': get_package(request.GET.get('packageId')),
        'subscription_type': request.GET.get('subscriptionType'),
        'amount': request.GET.get('amount'),
        'currency': request.GET.get('currency'),
    }
    return render(request, 'movokids/checkout.html', context)


def payment_result(request):
    context = {
        'status': request.GET.get('status', 'error'),
        'subscription_type': request.GET.get('subscriptionType'),
        'session_id': request.GET.get('session_id'),
        'order_id': request.GET.get('orderId'),
    }
    return render(request, 'movokids/payment_result.html', context)


# ================================
# PAYMENT API
# ================================

@require_POST
@api_login_required
def create_payment_api(request):
    """
    Start a purchase. Packages are priced from our own catalogue for the
    visitor's region; a 1:1 session either settles an existing request or
    carries the details of a new one.
    """
    try:
        data = json_body(request)
        subscription_type = data.get('subscription_type')
        provider = data.get('provider') or PROVIDER_STRIPE
        if provider not in (PROVIDER_STRIPE, PROVIDER_PAYMOB):
            raise ValidationError("Unknown payment provider")

        package = get_package(data.get('package_id'))
        if package is None:
            raise ValidationError("Unknown package")
        if subscription_type and subscription_type != package['subscription_type']:
            raise ValidationError("Package does not match the subscription type")

        is_egypt = data.get('is_egypt')
        if isinstance(is_egypt, str):
            is_egypt = is_egypt.lower() == 'true'
        if is_egypt is None:
            is_egypt = detect_is_egypt(request.META.get('REMOTE_ADDR'))
        amount, currency = package_price(package, bool(is_egypt))

        solo_details = None
        if package['subscription_type'] == SubscriptionType.INDIVIDUAL_SESSION:
            solo_details = {
                'coach_id': data.get('coach_id'),
                'preferred_time': data.get('preferred_time'),
                'contact_phone': data.get('contact_phone'),
                'notes': data.get('notes'),
            }

        result = create_payment(
            request.user,
            package['subscription_type'],
            amount,
            currency,
            package_id=package['id'],
            solo_session_request_id=data.get('solo_session_request_id'),
            solo_request_details=solo_details,
            base_url=request.build_absolute_uri('/'),
            provider=provider,
        )
    except ValidationError as e:
        return error_response(validation_message(e))
    except PaymentProviderError as e:
        logger.error("Checkout could not be opened for user %s: %s", request.user.pk, e)
        return error_response('Payment provider is unavailable, please try again', status=502)

    return JsonResponse({
        'success': True,
        'paymentId': result['payment_id'],
        'checkoutUrl': result['checkout_url'],
        'sessionId': result['session_id'],
        'region': region(bool(is_egypt)),
    })


@require_GET
@api_login_required
def my_payments_api(request):
    return JsonResponse({
        'success': True,
        'payments': [payment_to_dict(p) for p in get_user_payments(request.user)],
    })


@require_GET
@api_login_required
def payment_detail_api(request, pk):
    payment = get_payment(request.user, pk)
    if payment is None:
        return error_response('Payment not found', status=404)
    return JsonResponse({'success': True, 'payment': payment_to_dict(payment)})


@require_GET
@api_login_required
def payment_checkout_url_api(request, pk):
    """Where to resume an unfinished payment (Stripe page or Paymob iframe)."""
    payment = get_payment(request.user, pk)
    if payment is None:
        return error_response('Payment not found', status=404)
    url = checkout_url_for(payment)
    if not url:
        return error_response('Payment URL not found', status=404)
    return JsonResponse({'checkoutUrl': url})


@require_GET
@api_login_required
def session_details_api(request):
    """Tell the result page what was bought in a Stripe checkout."""
    session_id = request.GET.get('session_id')
    if not session_id:
        return error_response('Missing session_id')
    payment = Payment.objects.filter(user=request.user, stripe_checkout_session_id=session_id).first()
    if payment is None:
        # The session id was never stored locally; ask Stripe which payment it was for
        try:
            session = get_checkout_session(session_id)
        except PaymentProviderError as e:
            logger.warning("Stripe session %s could not be looked up: %s", session_id, e)
            session = None
        reference = session.get('client_reference_id') if session else None
        if reference and str(reference).isdigit():
            payment = Payment.objects.filter(user=request.user, pk=int(reference)).first()
    if payment is None:
        return error_response('Payment not found', status=404)
    return JsonResponse({'subscription_type': payment.subscription_type, 'status': payment.status})


# ================================
# PROVIDER CALLBACKS
# ================================

@csrf_exempt
@require_POST
def stripe_webhook(request):
    signature = request.headers.get('Stripe-Signature')
    if not signature or not settings.STRIPE_WEBHOOK_SECRET:
        return error_response('Missing signature or webhook secret')

    try:
        event = construct_event(request.body, signature)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Rejected Stripe webhook: %s", e)
        return error_response('Invalid signature')

    if event['type'] != 'checkout.session.completed':
        return JsonResponse({'received': True})

    session = event['data']['object']
    payment_id = session.get('client_reference_id')
    if not payment_id:
        return error_response('Missing client_reference_id')

    payment = Payment.objects.filter(pk=payment_id).first()
    if payment is None:
        logger.error("Stripe session %s points at missing payment %s", session.get('id'), payment_id)
        return error_response('Payment not found', status=404)

    if payment.status not in OPEN_STATUSES:
        # Already handled (Stripe retries webhooks)
        return JsonResponse({'received': True})

    mark_payment_successful(
        payment,
        payment_method=PROVIDER_STRIPE,
        stripe_checkout_session_id=session.get('id') or payment.stripe_checkout_session_id,
        provider_response={'checkout_session_id': session.get('id'),
                           'payment_intent': session.get('payment_intent')},
    )
    fulfill_payment(payment)
    logger.info("Stripe payment %s completed", payment.pk)
    return JsonResponse({'received': True})


def _paid_at(created_at):
    if isinstance(created_at, (int, float)) and created_at > 0:
        try:
            return datetime.fromtimestamp(created_at, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Bad Paymob timestamp %r", created_at)
    return timezone.now()


@csrf_exempt
@require_POST
def paymob_webhook(request):
    try:
        body = json_body(request)
    except ValidationError as e:
        return error_response(validation_message(e))

    received_hmac = request.headers.get('X-Hmac') or request.headers.get('Hmac') or request.GET.get('hmac')
    if settings.PAYMOB_HMAC_SECRET and not paymob.verify_hmac(body, received_hmac):
        logger.warning("Rejected Paymob webhook with a bad HMAC")
        return error_response('Invalid HMAC signature', status=403)

    transaction = body.get('obj') or {}
    order_id = (transaction.get('order') or {}).get('id')
    if not order_id:
        return error_response('Missing order ID')

    payment = Payment.objects.filter(paymob_order_id=str(order_id)).first()
    if payment is None:
        logger.error("Paymob webhook for unknown order %s", order_id)
        return error_response('Payment not found', status=404)

    status = paymob.resolve_transaction_status(transaction)
    payment.status = status
    payment.paymob_transaction_id = str(transaction.get('id') or '')
    payment.provider_response = body
    message = (transaction.get('data') or {}).get('message')
    if message:
        payment.error_message = message
    if status == Payment.Status.SUCCESS:
        payment.paid_at = _paid_at(transaction.get('created_at'))
    payment.save()

    if status == Payment.Status.SUCCESS:
        fulfill_payment(payment)
    logger.info("Paymob order %s is now %s", order_id, status)
    return JsonResponse({'success': True, 'status': status})


@require_GET
def paymob_callback(request):
    """
    Paymob sends the parent back here after the iframe.
    With an HMAC secret configured the redirect must be signed over its own
    query string, otherwise it is treated as a failed payment.
    """
    if settings.PAYMOB_HMAC_SECRET:
        signed_fields = {key: value for key, value in request.GET.items() if key != 'hmac'}
        if not paymob.verify_hmac(signed_fields, request.GET.get('hmac')):
            logger.warning("Rejected Paymob callback with a bad HMAC for order %s", request.GET.get('order'))
            return redirect(f"{reverse('payment_result')}?{urlencode({'status': 'failed'})}")

    success = request.GET.get('success') == 'true'
    order_id = request.GET.get('order')
    transaction_id = request.GET.get('id')

    payment = Payment.objects.filter(paymob_order_id=order_id).first() if order_id else None
    if success and payment is not None:
        if payment.status in OPEN_STATUSES:
            mark_payment_successful(
                payment, payment_method=PROVIDER_PAYMOB, paymob_transaction_id=transaction_id or ''
            )
            fulfill_payment(payment)
        elif payment.status == Payment.Status.SUCCESS:
            # The webhook may have been lost; fulfilment is idempotent
            if not payment.subscriptions.exists():
                fulfill_payment(payment)

    params = {'status': 'success' if success else 'failed'}
    if success and payment is not None:
        params['subscriptionType'] = payment.subscription_type
    if order_id:
        params['orderId'] = order_id
    if transaction_id:
        params['transactionId'] = transaction_id
    return redirect(f"{reverse('payment_result')}?{urlencode(params)}")


# ================================
# SUBSCRIPTIONS
# ================================

@require_GET
@api_login_required
def my_subscriptions_api(request):
    return JsonResponse({
        'success': True,
        'subscriptions': [subscription_to_dict(s) for s in get_user_subscriptions(request.user)],
        'hasIndividualSession': individual_session_purchase_count(request.user) > 0,
        'individualSessionCount': individual_session_purchase_count(request.user),
    })


@require_GET
def subscription_status(request):
    if not request.user.is_authenticated:
        return JsonResponse({
            'games': False, 'group_sessions': False,
            'hasExpiredSubscription': False, 'expiredSubscription': None,
        })

    games = has_subscription_type(request.user, SubscriptionType.GAMES)
    group_sessions = has_subscription_type(request.user, SubscriptionType.GROUP_SESSIONS)
    expired = None
    if not games and not group_sessions:
        expired = latest_expired_subscription(request.user)

    return JsonResponse({
        'games': games,
        'group_sessions': group_sessions,
        'hasExpiredSubscription': expired is not None,
        'expiredSubscription': subscription_to_dict(expired),
    })


@csrf_exempt
@require_POST
def update_expired_subscriptions_api(request):
    """Called by the scheduler with the cron secret, or by an admin."""
    auth = request.headers.get('Authorization', '')
    has_secret = bool(settings.CRON_SECRET) and auth == f'Bearer {settings.CRON_SECRET}'
    if not has_secret and not is_admin(request.user):
        return error_response('Unauthorized', status=401)

    count = update_expired_subscriptions()
    return JsonResponse({'success': True, 'expired': count})
