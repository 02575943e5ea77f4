"""
Paymob Accept integration (the payment provider used before Stripe).

The checkout takes three calls: an auth token, an order and a payment key.
The key is then shown in Paymob's hosted iframe.
"""
import hashlib
import hmac
import logging

import requests
from django.conf import settings

from .models import Payment
from .stripe_checkout import PaymentProviderError, to_minor_units

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15
PAYMENT_KEY_EXPIRATION_SECONDS = 3600


def _post(path, payload, token=None):
    headers = {'Content-Type': 'application/json'}
    if token:
        headers['Authorization'] = f'Bearer {token}'
    url = f"{settings.PAYMOB_BASE_URL.rstrip('/')}/{path.lstrip('/')}"
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        logger.error("Paymob request to %s failed: %s", path, exc)
        raise PaymentProviderError(f"Paymob request failed: {exc}") from exc

    if not response.ok:
        logger.error("Paymob %s returned %s: %s", path, response.status_code, response.text)
        raise PaymentProviderError(f"Paymob {path} failed: {response.text}")
    return response.json()


def authenticate():
    return _post('auth/tokens', {'api_key': settings.PAYMOB_API_KEY})['token']


def create_order(auth_token, amount, currency, merchant_order_id):
    return _post('ecommerce/orders', {
        'delivery_needed': False,
        'amount_cents': to_minor_units(amount),
        'currency': currency,
        'merchant_order_id': merchant_order_id,
    }, token=auth_token)


def create_payment_key(auth_token, order_id, amount, currency, billing_data, metadata=None, callback_url=None):
    payload = {
        'amount_cents': to_minor_units(amount),
        'expiration': PAYMENT_KEY_EXPIRATION_SECONDS,
        'order_id': order_id,
        'billing_data': billing_data,
        'currency': currency,
        'integration_id': int(settings.PAYMOB_INTEGRATION_ID),
        'lock_order_when_paid': False,
        'metadata': metadata or {},
    }
    if callback_url:
        payload['redirect_url'] = callback_url
    return _post('acceptance/payment_keys', payload, token=auth_token)['token']


def iframe_url(payment_token):
    return (
        f"https://accept.paymob.com/api/acceptance/iframes/{settings.PAYMOB_IFRAME_ID}"
        f"?payment_token={payment_token}"
    )


def create_payment_intent(amount, currency, merchant_order_id, billing_data, metadata=None, base_url=None):
    """
    Run the whole checkout handshake.
    Returns {'payment_token', 'iframe_url', 'order_id'}.
    """
    token = authenticate()
    order = create_order(token, amount, currency, merchant_order_id)
    callback_url = f"{base_url.rstrip('/')}/api/payments/callback/" if base_url else None
    payment_token = create_payment_key(
        token, order['id'], amount, currency, billing_data,
        metadata=metadata, callback_url=callback_url,
    )
    return {
        'payment_token': payment_token,
        'iframe_url': iframe_url(payment_token),
        'order_id': order['id'],
    }


def _hmac_value(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    return str(value)


def compute_hmac(payload, secret=None):
    """SHA-512 HMAC over `key=value` pairs sorted by key and joined with '&'."""
    secret = settings.PAYMOB_HMAC_SECRET if secret is None else secret
    message = '&'.join(f"{key}={_hmac_value(payload[key])}" for key in sorted(payload))
    return hmac.new(secret.encode('utf-8'), message.encode('utf-8'), hashlib.sha512).hexdigest()


def verify_hmac(payload, received_hmac, secret=None):
    if not received_hmac:
        return False
    return hmac.compare_digest(compute_hmac(payload, secret), received_hmac)


def resolve_transaction_status(transaction):
    """
    Map Paymob transaction flags to our payment status.
    Refunds win over voids, voids over success.
    """
    if transaction.get('is_refunded') or transaction.get('is_standalone_refund'):
        return Payment.Status.REFUNDED
    if transaction.get('is_voided') or transaction.get('is_void'):
        return Payment.Status.CANCELLED
    if transaction.get('success') and not transaction.get('pending'):
        return Payment.Status.SUCCESS
    if transaction.get('pending'):
        return Payment.Status.PROCESSING
    return Payment.Status.FAILED
