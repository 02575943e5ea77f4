from decimal import Decimal
from unittest import mock

import requests
from django.test import TestCase, override_settings

from movokids import paymob
from movokids.models import Payment
from movokids.stripe_checkout import PaymentProviderError


class HmacTests(TestCase):

    payload = {'type': 'TRANSACTION', 'obj': 'x', 'success': True, 'amount_cents': 29900}

    def test_keys_are_sorted_and_values_normalized(self):
        signed = paymob.compute_hmac(self.payload, secret='s3cret')
        reordered = dict(reversed(list(self.payload.items())))
        self.assertEqual(paymob.compute_hmac(reordered, secret='s3cret'), signed)
        self.assertEqual(len(signed), 128)

    def test_verify(self):
        signed = paymob.compute_hmac(self.payload, secret='s3cret')
        self.assertTrue(paymob.verify_hmac(self.payload, signed, secret='s3cret'))
        self.assertFalse(paymob.verify_hmac(self.payload, signed, secret='other'))
        self.assertFalse(paymob.verify_hmac(self.payload, None, secret='s3cret'))


class TransactionStatusTests(TestCase):

    def test_statuses(self):
        cases = [
            ({'success': True, 'is_refunded': True}, Payment.Status.REFUNDED),
            ({'success': True, 'is_voided': True}, Payment.Status.CANCELLED),
            ({'success': True, 'pending': False}, Payment.Status.SUCCESS),
            ({'success': False, 'pending': True}, Payment.Status.PROCESSING),
            ({'success': False}, Payment.Status.FAILED),
        ]
        for transaction, expected in cases:
            with self.subTest(transaction=transaction):
                self.assertEqual(paymob.resolve_transaction_status(transaction), expected)


@override_settings(PAYMOB_API_KEY='key', PAYMOB_INTEGRATION_ID='42', PAYMOB_IFRAME_ID='7',
                   PAYMOB_BASE_URL='https://accept.paymob.com/api')
class CheckoutHandshakeTests(TestCase):

    @mock.patch('movokids.paymob.requests.post')
    def test_three_calls_then_iframe(self, post):
        responses = [{'token': 'auth'}, {'id': 555}, {'token': 'pay-key'}]
        post.side_effect = [mock.Mock(ok=True, json=mock.Mock(return_value=r)) for r in responses]

        intent = paymob.create_payment_intent(Decimal('299'), 'EGP', 'movokids-1', {'email': 'a@b.c'},
                                              base_url='https://movokids.test')

        self.assertEqual(intent['order_id'], 555)
        self.assertEqual(intent['iframe_url'],
                         'https://accept.paymob.com/api/acceptance/iframes/7?payment_token=pay-key')
        key_payload = post.call_args_list[2].kwargs['json']
        self.assertEqual(key_payload['amount_cents'], 29900)
        self.assertEqual(key_payload['integration_id'], 42)
        self.assertEqual(key_payload['redirect_url'], 'https://movokids.test/api/payments/callback/')

    @mock.patch('movokids.paymob.requests.post')
    def test_network_error(self, post):
        post.side_effect = requests.ConnectionError('offline')
        with self.assertRaises(PaymentProviderError):
            paymob.authenticate()

    @mock.patch('movokids.paymob.requests.post')
    def test_error_status(self, post):
        post.return_value = mock.Mock(ok=False, status_code=401, text='bad key')
        with self.assertRaises(PaymentProviderError):
            paymob.authenticate()
