"""
Back-office content management: days, games, which game sits where on a
day, and the movement video catalogue.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max

from .models import DayGame, Game, LearningDay, PhysicalActivityVideo

logger = logging.getLogger(__name__)


def get_all_learning_days():
    """Every day, inactive ones included."""
    return list(LearningDay.objects.order_by('day_number'))


def get_all_games(game_type=None):
    games = Game.objects.all()
    if game_type:
        games = games.filter(type=game_type)
    return list(games.order_by('-created_at'))


def get_day_games(learning_day):
    return list(
        DayGame.objects.filter(learning_day=learning_day)
        .select_related('game')
        .order_by('order_in_day', 'id')
    )


def next_order_in_day(learning_day):
    last = DayGame.objects.filter(learning_day=learning_day).aggregate(last=Max('order_in_day'))['last']
    return (last or 0) + 1


def reorder_day_games(learning_day, orders):
    """
    Apply a batch of new positions for one day.
    `orders` is a list of {'id': day_game_id, 'order_in_day': n}.
    """
    ids = [item['id'] for item in orders]
    day_games = {dg.pk: dg for dg in DayGame.objects.filter(learning_day=learning_day, pk__in=ids)}
    missing = set(ids) - set(day_games)
    if missing:
        raise ValidationError(f"Unknown games for this day: {sorted(missing)}")

    positions = [int(item['order_in_day']) for item in orders]
    if len(set(positions)) != len(positions):
        raise ValidationError("Two games cannot share a position")

    with transaction.atomic():
        for item in orders:
            day_game = day_games[item['id']]
            day_game.order_in_day = int(item['order_in_day'])
            day_game.save(update_fields=['order_in_day'])

    logger.info("Reordered %s games on day %s", len(orders), learning_day.day_number)
    return get_day_games(learning_day)


def get_all_videos():
    return list(PhysicalActivityVideo.objects.order_by('video_number'))
