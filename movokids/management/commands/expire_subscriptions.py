from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from movokids.models import Subscription
from movokids.subscriptions import update_expired_subscriptions

User = get_user_model()


class Command(BaseCommand):
    help = 'Mark subscriptions whose end date has passed as expired (run daily from cron)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--email',
            type=str,
            help='Only report on a specific parent account (optional)',
        )

    def handle(self, *args, **options):
        email = options.get('email')

        expired_count = update_expired_subscriptions()
        if expired_count:
            self.stdout.write(
                self.style.SUCCESS(f'Expired {expired_count} subscription(s).')
            )
        else:
            self.stdout.write(
                self.style.WARNING('No subscriptions needed expiring. No action taken.')
            )

        if email:
            try:
                user = User.objects.get(email__iexact=email)
            except User.DoesNotExist:
                self.stdout.write(self.style.ERROR(f'User {email} not found.'))
                return

            active = Subscription.objects.filter(user=user, status=Subscription.Status.ACTIVE)
            if not active.exists():
                self.stdout.write(f'{email} has no active subscriptions.')
            for subscription in active:
                self.stdout.write(
                    f'{email}: {subscription.get_subscription_type_display()} until {subscription.end_date:%Y-%m-%d}'
                )
