from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db.models import UniqueConstraint, Index

from .validators import validate_phone_number, validate_not_in_future

User = get_user_model()


# ================================
# ACCOUNTS
# ================================

class ChildProfile(models.Model):
    """
    The child (and parent contact) behind a login.
    One per auth user; the account email is the login name.
    """

    class Role(models.TextChoices):
        USER = 'user', 'User'
        ADMIN = 'admin', 'Admin'
        SUPER_ADMIN = 'super_admin', 'Super admin'

    class Gender(models.TextChoices):
        MALE = 'male', 'Boy'
        FEMALE = 'female', 'Girl'

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='profile')

    # Child
    child_first_name = models.CharField(max_length=100)
    child_last_name = models.CharField(max_length=100, blank=True)
    child_birthday = models.DateField(null=True, blank=True, validators=[validate_not_in_future])
    child_gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    child_profile_picture = models.URLField(blank=True)

    # Parent contact
    parent_first_name = models.CharField(max_length=100, blank=True)
    parent_last_name = models.CharField(max_length=100, blank=True)
    parent_phone = models.CharField(max_length=20, blank=True, validators=[validate_phone_number])
    parent_nationality = models.CharField(max_length=100, blank=True)

    # Onboarding quiz results
    initial_quiz_score = models.PositiveIntegerField(null=True, blank=True)
    inattention_score = models.PositiveIntegerField(null=True, blank=True)
    hyperactivity_score = models.PositiveIntegerField(null=True, blank=True)
    impulsivity_score = models.PositiveIntegerField(null=True, blank=True)
    category_scores = models.JSONField(default=dict, blank=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)

    # Set the first time the child opens each area, drives the daily unlocks
    learning_path_started_at = models.DateTimeField(null=True, blank=True)
    physical_activities_started_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['role'], name='profile_role_idx'),
        ]

    def __str__(self):
        return f"{self.child_full_name} ({self.user.email or self.user.username})"

    @property
    def child_full_name(self):
        return f"{self.child_first_name} {self.child_last_name}".strip()

    @property
    def parent_full_name(self):
        return f"{self.parent_first_name} {self.parent_last_name}".strip()

    @property
    def is_admin(self):
        return self.role in {self.Role.ADMIN, self.Role.SUPER_ADMIN}

    @property
    def is_super_admin(self):
        return self.role == self.Role.SUPER_ADMIN


# ================================
# ONBOARDING QUIZ
# ================================

class Quiz(models.Model):
    """A questionnaire. The one typed INITIAL is shown before signup."""

    class QuizType(models.TextChoices):
        INITIAL = 'INITIAL', 'Initial assessment'

    type = models.CharField(max_length=20, choices=QuizType.choices, default=QuizType.INITIAL)
    title = models.CharField(max_length=200)
    title_ar = models.CharField(max_length=200, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Quizzes"
        ordering = ['id']

    def __str__(self):
        return f"{self.title} [{self.type}]"


class QuizQuestion(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name='questions')
    question = models.TextField()
    question_ar = models.TextField(blank=True)
    category = models.CharField(max_length=100, blank=True)
    category_ar = models.CharField(max_length=100, blank=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return self.question[:60]


# ================================
# LEARNING PATH
# ================================

class Game(models.Model):
    """
    A configured mini-game. The browser plays it; we only keep the settings
    (pairs, time limit, colours...) in `config`.
    """

    class GameType(models.TextChoices):
        MATCHING = 'matching', 'Matching Game'
        MEMORY = 'memory', 'Memory Game'
        SEQUENCE = 'sequence', 'Sequence Game'
        ATTENTION = 'attention', 'Attention Game'
        SORTING = 'sorting', 'Sorting Game'
        AIMING = 'aiming', 'Aiming Game'
        PATTERN = 'pattern', 'Pattern Recognition'
        SIMON = 'simon', 'Simon Says'
        REACTION = 'reaction', 'Reaction Time'
        COLOR_SWITCHING = 'color_switching', 'Color Switching'

    type = models.CharField(max_length=20, choices=GameType.choices)
    name = models.CharField(max_length=200)
    name_ar = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_ar = models.TextField(blank=True)
    difficulty_level = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    config = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                name='game_difficulty_between_1_and_5',
                check=models.Q(difficulty_level__gte=1) & models.Q(difficulty_level__lte=5),
                violation_error_message='Difficulty must be between 1 and 5.',
            )
        ]
        indexes = [
            models.Index(fields=['type'], name='game_type_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_type_display()})"


class LearningDay(models.Model):
    """One day of the path. Day N unlocks N-1 calendar days after the child starts."""

    day_number = models.PositiveIntegerField(unique=True)
    title = models.CharField(max_length=200)
    title_ar = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_ar = models.TextField(blank=True)
    required_correct_games = models.PositiveIntegerField(default=5)
    is_active = models.BooleanField(default=True)

    games = models.ManyToManyField(Game, through='DayGame', related_name='learning_days')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['day_number']

    def __str__(self):
        return f"Day {self.day_number}: {self.title}"


class DayGame(models.Model):
    learning_day = models.ForeignKey(LearningDay, on_delete=models.CASCADE, related_name='day_games')
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='day_games')
    order_in_day = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['learning_day', 'order_in_day']
        indexes = [
            models.Index(fields=['learning_day', 'order_in_day'], name='daygame_day_order_idx'),
        ]

    def __str__(self):
        return f"Day {self.learning_day.day_number} #{self.order_in_day}: {self.game.name}"


class UserDayProgress(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='day_progress')
    learning_day = models.ForeignKey(LearningDay, on_delete=models.CASCADE, related_name='progress')
    is_completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    games_correct_count = models.PositiveIntegerField(default=0)
    current_game_order = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "User day progress"
        ordering = ['learning_day__day_number']
        constraints = [
            UniqueConstraint(
                fields=['user', 'learning_day'],
                name='unique_progress_per_user_per_day',
                violation_error_message='Progress for this day already exists.'
            )
        ]
        indexes = [
            models.Index(fields=['user', 'is_completed'], name='progress_user_done_idx'),
            models.Index(fields=['updated_at'], name='progress_updated_idx'),
        ]

    def __str__(self):
        state = 'done' if self.is_completed else f'{self.games_correct_count} correct'
        return f"{self.user} - day {self.learning_day.day_number} ({state})"


class UserGameAttempt(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='game_attempts')
    game = models.ForeignKey(Game, on_delete=models.CASCADE, related_name='attempts')
    learning_day = models.ForeignKey(LearningDay, on_delete=models.CASCADE, related_name='attempts')
    day_game = models.ForeignKey(
        DayGame, on_delete=models.SET_NULL, null=True, blank=True, related_name='attempts'
    )
    is_correct = models.BooleanField(default=False)
    score = models.IntegerField(default=0)
    time_taken_seconds = models.PositiveIntegerField(null=True, blank=True)
    attempt_number = models.PositiveIntegerField(default=1)
    mistakes_count = models.PositiveIntegerField(default=0)
    # Raw per-game details from the browser (moves, matched pairs, sorted items...)
    game_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            Index(fields=['user', 'learning_day'], name='attempt_user_day_idx'),
            Index(fields=['user', 'game', 'learning_day'], name='attempt_user_game_day_idx'),
            Index(fields=['game', 'is_correct', '-score'], name='attempt_game_score_idx'),
        ]

    def __str__(self):
        result = 'correct' if self.is_correct else 'wrong'
        return f"{self.user} - {self.game.name} #{self.attempt_number} ({result})"


# ================================
# PHYSICAL ACTIVITIES
# ================================

class PhysicalActivityVideo(models.Model):
    video_number = models.PositiveIntegerField(unique=True)
    title = models.CharField(max_length=200)
    title_ar = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_ar = models.TextField(blank=True)
    duration_seconds = models.PositiveIntegerField(null=True, blank=True)
    thumbnail_url = models.URLField(blank=True)
    # Path of the video file inside the default storage
    storage_path = models.CharField(max_length=500)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['video_number']

    def __str__(self):
        return f"#{self.video_number} {self.title}"


class UserPhysicalActivityProgress(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='activity_progress')
    video_number = models.PositiveIntegerField()
    watched_at = models.DateTimeField()
    is_completed = models.BooleanField(default=True)
    watch_duration_seconds = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "User physical activity progress"
        ordering = ['-watched_at']
        indexes = [
            models.Index(fields=['user', '-watched_at'], name='activity_user_watched_idx'),
        ]

    def __str__(self):
        return f"{self.user} watched #{self.video_number} at {self.watched_at:%Y-%m-%d %H:%M}"


# ================================
# COACHING SESSIONS
# ================================

class Coach(models.Model):
    name = models.CharField(max_length=200)
    name_ar = models.CharField(max_length=200, blank=True)
    title = models.CharField(max_length=200, blank=True)
    title_ar = models.CharField(max_length=200, blank=True)
    bio = models.TextField(blank=True)
    bio_ar = models.TextField(blank=True)
    image_url = models.URLField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Coaches"
        ordering = ['name']

    def __str__(self):
        return self.name


class GroupSession(models.Model):
    """A scheduled online group session run by a coach."""

    coach = models.ForeignKey(Coach, on_delete=models.SET_NULL, null=True, blank=True, related_name='sessions')
    title = models.CharField(max_length=200)
    title_ar = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    description_ar = models.TextField(blank=True)
    platform = models.CharField(max_length=50, default='zoom')
    meeting_link = models.URLField()
    session_date = models.DateTimeField()
    max_participants = models.PositiveIntegerField(default=10)
    duration_minutes = models.PositiveIntegerField(default=45)
    is_free = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['session_date']
        indexes = [
            models.Index(fields=['session_date'], name='session_date_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.session_date:%Y-%m-%d %H:%M})"


class SessionEnrollment(models.Model):
    session = models.ForeignKey(GroupSession, on_delete=models.CASCADE, related_name='enrollments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='session_enrollments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            UniqueConstraint(
                fields=['session', 'user'],
                name='unique_enrollment_per_session',
                violation_error_message='Already enrolled.'
            )
        ]

    def __str__(self):
        return f"{self.user} in {self.session.title}"


class SoloSessionRequest(models.Model):
    """A 1:1 coaching request. Admins approve it, the parent pays for it."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAYMENT_PENDING = 'payment_pending', 'Awaiting payment'
        APPROVED = 'approved', 'Approved'
        PAID = 'paid', 'Paid'
        REJECTED = 'rejected', 'Rejected'

    DEFAULT_DURATION_MINUTES = 38

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='solo_session_requests')
    coach = models.ForeignKey(Coach, on_delete=models.SET_NULL, null=True, blank=True, related_name='solo_requests')
    preferred_time = models.DateTimeField(null=True, blank=True)
    scheduled_time = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(default=DEFAULT_DURATION_MINUTES)
    notes = models.TextField(blank=True)
    contact_phone = models.CharField(max_length=20, blank=True, validators=[validate_phone_number])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    meeting_link = models.URLField(blank=True)
    admin_reason = models.TextField(blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    responded_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='solo_requests_responded'
    )
    payment = models.ForeignKey(
        'Payment', on_delete=models.SET_NULL, null=True, blank=True, related_name='solo_requests'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='solo_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.get_status_display()}"


# ================================
# PAYMENTS & SUBSCRIPTIONS
# ================================

class SubscriptionType(models.TextChoices):
    GAMES = 'games', 'Games package'
    GROUP_SESSIONS = 'group_sessions', 'Group sessions package'
    INDIVIDUAL_SESSION = 'individual_session', '1:1 session'


class Payment(models.Model):

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PROCESSING = 'processing', 'Processing'
        SUCCESS = 'success', 'Success'
        FAILED = 'failed', 'Failed'
        CANCELLED = 'cancelled', 'Cancelled'
        REFUNDED = 'refunded', 'Refunded'

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_method = models.CharField(max_length=50, blank=True)
    subscription_type = models.CharField(max_length=20, choices=SubscriptionType.choices)
    package_id = models.PositiveIntegerField(null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    # Provider references
    stripe_checkout_session_id = models.CharField(max_length=255, blank=True, db_index=True)
    paymob_order_id = models.CharField(max_length=64, blank=True, db_index=True)
    paymob_transaction_id = models.CharField(max_length=64, blank=True)
    provider_response = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True)

    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                name='payment_amount_positive',
                check=models.Q(amount__gt=0),
                violation_error_message='Payment amount must be positive.',
            )
        ]
        indexes = [
            models.Index(fields=['user', 'status'], name='payment_user_status_idx'),
        ]

    def __str__(self):
        return f"Payment #{self.pk} {self.amount} {self.currency} ({self.status})"


class Subscription(models.Model):

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        EXPIRED = 'expired', 'Expired'
        CANCELLED = 'cancelled', 'Cancelled'

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='subscriptions')
    payment = models.ForeignKey(Payment, on_delete=models.SET_NULL, null=True, blank=True, related_name='subscriptions')
    subscription_type = models.CharField(max_length=20, choices=SubscriptionType.choices)
    package_id = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                name='subscription_ends_after_start',
                check=models.Q(end_date__gt=models.F('start_date')),
                violation_error_message='A subscription must end after it starts.',
            )
        ]
        indexes = [
            models.Index(fields=['user', 'status', 'end_date'], name='sub_user_status_end_idx'),
        ]

    def __str__(self):
        return f"{self.user} - {self.get_subscription_type_display()} until {self.end_date:%Y-%m-%d} ({self.status})"


# ================================
# BLOG
# ================================

class Blog(models.Model):
    slug = models.SlugField(max_length=200, unique=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    # HTML produced by the back-office editor
    content = models.TextField()
    thumbnail_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def get_absolute_url(self):
        from django.urls import reverse
        return reverse('blog_detail', kwargs={'slug': self.slug})
