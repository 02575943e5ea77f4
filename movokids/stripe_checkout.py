"""
Stripe Checkout for one-time package payments.
"""
import logging

import stripe
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """A payment provider refused or failed a request."""


def _configure():
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentProviderError("STRIPE_SECRET_KEY is not set")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def to_minor_units(amount):
    """29.99 -> 2999. Stripe and Paymob both take the smallest currency unit."""
    return int(round(float(amount) * 100))


def create_checkout_session(payment_id, amount, currency, customer_email, success_url, cancel_url,
                            metadata, line_item_label, line_item_description=None):
    """
    Open a Checkout session for a single line item.
    Returns (session_id, url).
    """
    _configure()

    product_data = {'name': line_item_label}
    if line_item_description:
        product_data['description'] = line_item_description

    session_metadata = {
        'payment_id': str(payment_id),
        'user_id': str(metadata['user_id']),
        'subscription_type': metadata['subscription_type'],
    }
    for key in ('solo_session_request_id', 'package_id'):
        if metadata.get(key) is not None:
            session_metadata[key] = str(metadata[key])

    try:
        session = stripe.checkout.Session.create(
            mode='payment',
            payment_method_types=['card'],
            line_items=[{
                'price_data': {
                    'currency': currency.lower(),
                    'unit_amount': to_minor_units(amount),
                    'product_data': product_data,
                },
                'quantity': 1,
            }],
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=customer_email or None,
            client_reference_id=str(payment_id),
            metadata=session_metadata,
        )
    except stripe.StripeError as exc:
        logger.error("Stripe checkout creation failed for payment %s: %s", payment_id, exc)
        raise PaymentProviderError(str(exc)) from exc

    if not session.url:
        raise PaymentProviderError("Stripe did not return a checkout URL")
    return session.id, session.url


def get_checkout_session(session_id):
    """Fetch a Checkout session, or None when Stripe does not know it."""
    _configure()
    try:
        return stripe.checkout.Session.retrieve(session_id, expand=['payment_intent'])
    except stripe.StripeError:
        logger.warning("Could not retrieve Stripe session %s", session_id)
        return None


def construct_event(payload, signature):
    """Verify a webhook payload. Raises ValueError or stripe.SignatureVerificationError."""
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
