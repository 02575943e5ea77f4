"""
What things cost. Families in Egypt pay in EGP, everyone else in AED
(USD for an accepted 1:1 request), based on where their IP says they are.
"""
import logging
from decimal import Decimal

import requests
from django.conf import settings

from .models import SubscriptionType

logger = logging.getLogger(__name__)

GEOLOCATION_TIMEOUT = 5

PACKAGES = [
    {
        'id': 1,
        'subscription_type': SubscriptionType.GAMES,
        'name': 'Games package',
        'name_ar': 'باقة الألعاب',
        'description': 'Full access to every learning game',
        'egypt': (Decimal('299'), 'EGP'),
        'international': (Decimal('60'), 'AED'),
    },
    {
        'id': 2,
        'subscription_type': SubscriptionType.GROUP_SESSIONS,
        'name': 'Group sessions package',
        'name_ar': 'باقة الجلسات الجماعية',
        'description': 'Games plus 4 group sessions a month',
        'egypt': (Decimal('650'), 'EGP'),
        'international': (Decimal('220'), 'AED'),
    },
    {
        'id': 3,
        'subscription_type': SubscriptionType.INDIVIDUAL_SESSION,
        'name': '1:1 session',
        'name_ar': 'الباقة الفردية',
        'description': 'A private session with a coach, booked when you need it',
        'egypt': (Decimal('200'), 'EGP'),
        'international': (Decimal('50'), 'AED'),
    },
]

# Price of a 1:1 request an admin has asked the family to pay for
SOLO_SESSION_PRICE = {
    'egypt': (Decimal('200'), 'EGP'),
    'international': (Decimal('12.99'), 'USD'),
}


def region(is_egypt):
    return 'egypt' if is_egypt else 'international'


def get_package(package_id):
    try:
        package_id = int(package_id)
    except (TypeError, ValueError):
        return None
    return next((p for p in PACKAGES if p['id'] == package_id), None)


def package_price(package, is_egypt):
    """(amount, currency) for a package in the visitor's region."""
    return package[region(is_egypt)]


def solo_session_price(is_egypt):
    return SOLO_SESSION_PRICE[region(is_egypt)]


def detect_is_egypt(ip_address=None):
    """Ask the geolocation service where the visitor is. Any failure counts as abroad."""
    base = settings.GEOLOCATION_URL.rstrip('/')
    url = f"{base}/{ip_address}/json/" if ip_address else f"{base}/json/"
    try:
        response = requests.get(url, timeout=GEOLOCATION_TIMEOUT)
        response.raise_for_status()
        return response.json().get('country_code') == 'EG'
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Location lookup failed, using international pricing: %s", exc)
        return False
