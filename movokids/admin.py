from django.contrib import admin

from .models import (
    Blog, ChildProfile, Coach, DayGame, Game, GroupSession, LearningDay, Payment,
    PhysicalActivityVideo, Quiz, QuizQuestion, SessionEnrollment, SoloSessionRequest,
    Subscription, UserDayProgress, UserGameAttempt, UserPhysicalActivityProgress,
)


@admin.register(ChildProfile)
class ChildProfileAdmin(admin.ModelAdmin):
    list_display = ['child_full_name', 'user', 'role', 'initial_quiz_score', 'created_at']
    list_filter = ['role', 'child_gender', 'created_at']
    search_fields = ['child_first_name', 'child_last_name', 'parent_first_name', 'parent_last_name',
                     'parent_phone', 'user__email']
    readonly_fields = ['created_at', 'learning_path_started_at', 'physical_activities_started_at']

    fieldsets = (
        ('Child', {
            'fields': ('user', 'child_first_name', 'child_last_name', 'child_birthday',
                       'child_gender', 'child_profile_picture')
        }),
        ('Parent', {
            'fields': ('parent_first_name', 'parent_last_name', 'parent_phone', 'parent_nationality')
        }),
        ('Quiz results', {
            'fields': ('initial_quiz_score', 'inattention_score', 'hyperactivity_score',
                       'impulsivity_score', 'category_scores'),
            'classes': ('collapse',)
        }),
        ('Access', {
            'fields': ('role', 'learning_path_started_at', 'physical_activities_started_at', 'created_at')
        }),
    )


class QuizQuestionInline(admin.TabularInline):
    model = QuizQuestion
    extra = 1
    fields = ['order', 'question', 'question_ar', 'category', 'category_ar']


@admin.register(Quiz)
class QuizAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'created_at']
    inlines = [QuizQuestionInline]


@admin.register(Game)
class GameAdmin(admin.ModelAdmin):
    list_display = ['name', 'type', 'difficulty_level', 'is_active', 'created_at']
    list_filter = ['type', 'difficulty_level', 'is_active']
    search_fields = ['name', 'name_ar', 'description']
    readonly_fields = ['created_at', 'updated_at']


class DayGameInline(admin.TabularInline):
    model = DayGame
    extra = 1
    autocomplete_fields = ['game']
    ordering = ['order_in_day']


@admin.register(LearningDay)
class LearningDayAdmin(admin.ModelAdmin):
    list_display = ['day_number', 'title', 'required_correct_games', 'is_active']
    list_filter = ['is_active']
    search_fields = ['title', 'title_ar']
    inlines = [DayGameInline]


@admin.register(UserDayProgress)
class UserDayProgressAdmin(admin.ModelAdmin):
    list_display = ['user', 'learning_day', 'games_correct_count', 'is_completed', 'completed_at', 'updated_at']
    list_filter = ['is_completed', 'learning_day']
    search_fields = ['user__email']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(UserGameAttempt)
class UserGameAttemptAdmin(admin.ModelAdmin):
    list_display = ['user', 'game', 'learning_day', 'attempt_number', 'is_correct', 'score', 'created_at']
    list_filter = ['is_correct', 'game__type', 'learning_day']
    search_fields = ['user__email', 'game__name']
    readonly_fields = ['created_at']


@admin.register(PhysicalActivityVideo)
class PhysicalActivityVideoAdmin(admin.ModelAdmin):
    list_display = ['video_number', 'title', 'duration_seconds', 'is_active']
    list_filter = ['is_active']
    search_fields = ['title', 'title_ar', 'storage_path']


@admin.register(UserPhysicalActivityProgress)
class UserPhysicalActivityProgressAdmin(admin.ModelAdmin):
    list_display = ['user', 'video_number', 'watched_at', 'watch_duration_seconds', 'is_completed']
    list_filter = ['is_completed', 'watched_at']
    search_fields = ['user__email']


@admin.register(Coach)
class CoachAdmin(admin.ModelAdmin):
    list_display = ['name', 'title']
    search_fields = ['name', 'name_ar', 'title']


class SessionEnrollmentInline(admin.TabularInline):
    model = SessionEnrollment
    extra = 0
    readonly_fields = ['created_at']


@admin.register(GroupSession)
class GroupSessionAdmin(admin.ModelAdmin):
    list_display = ['title', 'coach', 'session_date', 'max_participants', 'is_free']
    list_filter = ['is_free', 'platform', 'coach']
    search_fields = ['title', 'title_ar', 'coach__name']
    date_hierarchy = 'session_date'
    inlines = [SessionEnrollmentInline]


@admin.register(SoloSessionRequest)
class SoloSessionRequestAdmin(admin.ModelAdmin):
    list_display = ['user', 'coach', 'status', 'preferred_time', 'scheduled_time', 'created_at']
    list_filter = ['status', 'coach']
    search_fields = ['user__email', 'notes']
    readonly_fields = ['created_at', 'updated_at', 'responded_at', 'responded_by', 'payment']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'amount', 'currency', 'subscription_type', 'status', 'paid_at', 'created_at']
    list_filter = ['status', 'subscription_type', 'currency', 'payment_method']
    search_fields = ['user__email', 'stripe_checkout_session_id', 'paymob_order_id']
    readonly_fields = ['created_at', 'updated_at', 'provider_response', 'metadata']


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['user', 'subscription_type', 'package_id', 'status', 'start_date', 'end_date']
    list_filter = ['status', 'subscription_type']
    search_fields = ['user__email']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Blog)
class BlogAdmin(admin.ModelAdmin):
    list_display = ['title', 'slug', 'created_at']
    search_fields = ['title', 'description']
    prepopulated_fields = {'slug': ('title',)}
