from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from movokids.models import ChildProfile, DayGame, Game, LearningDay, Subscription, SubscriptionType

User = get_user_model()

PASSWORD = 'Sup3r-Secret-pass'


def make_user(email='parent@example.com', role=ChildProfile.Role.USER, **profile_fields):
    user = User.objects.create_user(username=email, email=email, password=PASSWORD)
    profile_fields.setdefault('child_first_name', 'Lina')
    ChildProfile.objects.create(user=user, role=role, **profile_fields)
    return user


def make_game(name='Memory match', game_type=Game.GameType.MEMORY, **fields):
    return Game.objects.create(name=name, type=game_type, **fields)


def make_day(day_number, game_count=3, required_correct_games=5, **fields):
    """A learning day with `game_count` fresh games in order."""
    day = LearningDay.objects.create(
        day_number=day_number,
        title=f'Day {day_number}',
        required_correct_games=required_correct_games,
        **fields
    )
    for order in range(1, game_count + 1):
        DayGame.objects.create(
            learning_day=day,
            game=make_game(name=f'Day {day_number} game {order}'),
            order_in_day=order,
        )
    return day


def give_subscription(user, subscription_type=SubscriptionType.GAMES, package_id=1, days=30, **fields):
    now = timezone.now()
    fields.setdefault('start_date', now - timedelta(days=1))
    fields.setdefault('end_date', now + timedelta(days=days))
    return Subscription.objects.create(
        user=user,
        subscription_type=subscription_type,
        package_id=package_id,
        amount=Decimal('299'),
        currency='EGP',
        **fields
    )
