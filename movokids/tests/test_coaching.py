from datetime import timedelta
from decimal import Decimal
from unittest import mock

import requests
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from movokids import coaching
from movokids.models import Coach, GroupSession, SessionEnrollment, SoloSessionRequest
from movokids.pricing import detect_is_egypt, get_package, package_price
from movokids.tests.helpers import make_user


def make_session(days_ahead=3, **fields):
    fields.setdefault('title', 'Focus games together')
    fields.setdefault('meeting_link', 'https://zoom.us/j/123')
    return GroupSession.objects.create(session_date=timezone.now() + timedelta(days=days_ahead), **fields)


class GroupSessionTests(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_enroll(self):
        session = make_session()
        coaching.enroll_in_session(self.user, session)
        self.assertTrue(SessionEnrollment.objects.filter(session=session, user=self.user).exists())

    def test_past_session(self):
        session = make_session(days_ahead=-1)
        with self.assertRaisesMessage(ValidationError, 'Cannot enroll in past sessions'):
            coaching.enroll_in_session(self.user, session)

    def test_enrolling_twice(self):
        session = make_session()
        coaching.enroll_in_session(self.user, session)
        with self.assertRaisesMessage(ValidationError, 'Already enrolled'):
            coaching.enroll_in_session(self.user, session)

    def test_full_session(self):
        session = make_session(max_participants=1)
        coaching.enroll_in_session(make_user('first@example.com'), session)
        with self.assertRaisesMessage(ValidationError, 'Session is full'):
            coaching.enroll_in_session(self.user, session)

    def test_already_enrolled_wins_over_full(self):
        session = make_session(max_participants=1)
        coaching.enroll_in_session(self.user, session)
        with self.assertRaisesMessage(ValidationError, 'Already enrolled'):
            coaching.enroll_in_session(self.user, session)

    def test_cancel(self):
        session = make_session()
        coaching.enroll_in_session(self.user, session)
        self.assertTrue(coaching.cancel_enrollment(self.user, session))
        self.assertFalse(coaching.cancel_enrollment(self.user, session))

    def test_listing_hides_past_sessions_and_marks_enrollment(self):
        upcoming = make_session()
        make_session(days_ahead=-2)
        coaching.enroll_in_session(self.user, upcoming)

        sessions = coaching.get_sessions(self.user)

        self.assertEqual(sessions, [upcoming])
        self.assertTrue(sessions[0].is_enrolled)
        self.assertEqual(sessions[0].enrollment_count, 1)

    def test_filter_by_coach(self):
        coach = Coach.objects.create(name='Mona')
        mine = make_session(coach=coach)
        make_session()
        self.assertEqual(coaching.get_sessions(self.user, coach_id=coach.pk), [mine])

    def test_enrollment_rows_for_coaches(self):
        session = make_session()
        coaching.enroll_in_session(make_user('kid@example.com', parent_phone='+201001234567'), session)
        rows = coaching.get_session_enrollments(session)
        self.assertEqual(rows[0]['email'], 'kid@example.com')
        self.assertEqual(rows[0]['parent_phone'], '+201001234567')


class SoloRequestTests(TestCase):

    def setUp(self):
        self.user = make_user(parent_phone='+201001234567', parent_first_name='Hoda')
        self.admin = make_user('admin@example.com', role='admin')
        self.super_admin = make_user('boss@example.com', role='super_admin')

    def test_one_open_request_at_a_time(self):
        coaching.create_solo_session_request(self.user, notes='Mornings please')
        with self.assertRaisesMessage(ValidationError, 'You already have a pending session request'):
            coaching.create_solo_session_request(self.user)

    def test_awaiting_payment_blocks_new_request(self):
        SoloSessionRequest.objects.create(user=self.user, status=SoloSessionRequest.Status.PAYMENT_PENDING)
        with self.assertRaisesMessage(ValidationError, 'awaiting payment'):
            coaching.create_solo_session_request(self.user)

    def test_new_request_after_rejection(self):
        SoloSessionRequest.objects.create(user=self.user, status=SoloSessionRequest.Status.REJECTED)
        request = coaching.create_solo_session_request(self.user)
        self.assertEqual(request.duration_minutes, SoloSessionRequest.DEFAULT_DURATION_MINUTES)

    def test_approval_needs_a_meeting_link(self):
        request = coaching.create_solo_session_request(self.user)
        with self.assertRaisesMessage(ValidationError, 'Meeting link is required'):
            coaching.respond_solo_session_request(self.admin, request, SoloSessionRequest.Status.APPROVED)

    def test_rejection_without_link(self):
        request = coaching.create_solo_session_request(self.user)
        coaching.respond_solo_session_request(
            self.admin, request, SoloSessionRequest.Status.REJECTED, admin_reason='No slots this week'
        )
        request.refresh_from_db()
        self.assertEqual(request.status, SoloSessionRequest.Status.REJECTED)
        self.assertEqual(request.responded_by, self.admin)
        self.assertIsNotNone(request.responded_at)

    def test_admin_cannot_mark_paid(self):
        request = coaching.create_solo_session_request(self.user)
        with self.assertRaises(ValidationError):
            coaching.respond_solo_session_request(
                self.admin, request, SoloSessionRequest.Status.PAID, meeting_link='https://zoom.us/j/9'
            )

    def test_paid_request_stays_paid(self):
        request = SoloSessionRequest.objects.create(user=self.user, status=SoloSessionRequest.Status.PAID)
        coaching.respond_solo_session_request(
            self.admin, request, SoloSessionRequest.Status.REJECTED, meeting_link='https://zoom.us/j/9'
        )
        request.refresh_from_db()
        self.assertEqual(request.status, SoloSessionRequest.Status.PAID)

    def test_edit_keeps_paid(self):
        request = SoloSessionRequest.objects.create(user=self.user, status=SoloSessionRequest.Status.PAID)
        scheduled = timezone.now() + timedelta(days=2)
        coaching.respond_solo_session_request(
            self.admin, request, coaching.EDIT_STATUS, meeting_link='https://zoom.us/j/10', scheduled_time=scheduled
        )
        request.refresh_from_db()
        self.assertEqual(request.status, SoloSessionRequest.Status.PAID)
        self.assertEqual(request.meeting_link, 'https://zoom.us/j/10')

    def test_edit_keeps_what_was_left_out(self):
        scheduled = timezone.now() + timedelta(days=3)
        request = SoloSessionRequest.objects.create(
            user=self.user, status=SoloSessionRequest.Status.PAID,
            meeting_link='https://zoom.us/j/11', scheduled_time=scheduled,
        )

        coaching.respond_solo_session_request(self.admin, request, coaching.EDIT_STATUS, admin_reason='Moved rooms')

        request.refresh_from_db()
        self.assertEqual(request.meeting_link, 'https://zoom.us/j/11')
        self.assertEqual(request.scheduled_time, scheduled)
        self.assertEqual(request.admin_reason, 'Moved rooms')

    def test_contact_details_only_for_super_admins(self):
        coaching.create_solo_session_request(self.user)

        admin_row = coaching.get_admin_solo_session_requests(self.admin)[0]
        boss_row = coaching.get_admin_solo_session_requests(self.super_admin)[0]

        self.assertIsNone(admin_row['parent_phone'])
        self.assertIsNone(admin_row['email'])
        self.assertEqual(boss_row['parent_phone'], '+201001234567')
        self.assertEqual(boss_row['email'], 'parent@example.com')
        self.assertEqual(boss_row['parent_name'], 'Hoda')

    def test_status_filter(self):
        coaching.create_solo_session_request(self.user)
        self.assertEqual(coaching.get_admin_solo_session_requests(self.admin, status='approved'), [])

    @mock.patch('movokids.coaching.create_payment')
    def test_paying_for_a_request(self, create_payment):
        create_payment.return_value = {'success': True, 'payment_id': 12, 'checkout_url': 'https://pay', 'session_id': 'cs'}
        request = SoloSessionRequest.objects.create(
            user=self.user, status=SoloSessionRequest.Status.PAYMENT_PENDING, meeting_link='https://zoom.us/j/1'
        )

        result = coaching.initiate_solo_session_payment(self.user, request.pk, is_egypt=False)

        args, kwargs = create_payment.call_args
        self.assertEqual(args[2:], (Decimal('12.99'), 'USD'))
        self.assertEqual(kwargs['solo_session_request_id'], request.pk)
        self.assertEqual(result['checkout_url'], 'https://pay')
        self.assertIn(f'soloSessionRequestId={request.pk}', result['redirect_url'])

    def test_cannot_pay_for_a_pending_request(self):
        request = coaching.create_solo_session_request(self.user)
        with self.assertRaisesMessage(ValidationError, 'not awaiting payment'):
            coaching.initiate_solo_session_payment(self.user, request.pk, is_egypt=True)

    def test_cannot_pay_for_someone_elses_request(self):
        request = SoloSessionRequest.objects.create(
            user=self.admin, status=SoloSessionRequest.Status.PAYMENT_PENDING
        )
        with self.assertRaisesMessage(ValidationError, 'Request not found'):
            coaching.initiate_solo_session_payment(self.user, request.pk, is_egypt=True)


class PricingTests(TestCase):

    def test_regional_prices(self):
        games = get_package(1)
        self.assertEqual(package_price(games, True), (Decimal('299'), 'EGP'))
        self.assertEqual(package_price(games, False), (Decimal('60'), 'AED'))
        self.assertIsNone(get_package('nope'))
        self.assertIsNone(get_package(99))

    @mock.patch('movokids.pricing.requests.get')
    def test_egyptian_ip(self, get):
        get.return_value.json.return_value = {'country_code': 'EG'}
        self.assertTrue(detect_is_egypt('41.33.0.1'))
        self.assertIn('/41.33.0.1/json/', get.call_args.args[0])

    @mock.patch('movokids.pricing.requests.get')
    def test_lookup_failure_means_international(self, get):
        get.side_effect = requests.ConnectionError('offline')
        self.assertFalse(detect_is_egypt('41.33.0.1'))
