import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import movokids.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ChildProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('child_first_name', models.CharField(max_length=100)),
                ('child_last_name', models.CharField(blank=True, max_length=100)),
                ('child_birthday', models.DateField(blank=True, null=True, validators=[movokids.validators.validate_not_in_future])),
                ('child_gender', models.CharField(blank=True, choices=[('male', 'Boy'), ('female', 'Girl')], max_length=10)),
                ('child_profile_picture', models.URLField(blank=True)),
                ('parent_first_name', models.CharField(blank=True, max_length=100)),
                ('parent_last_name', models.CharField(blank=True, max_length=100)),
                ('parent_phone', models.CharField(blank=True, max_length=20, validators=[movokids.validators.validate_phone_number])),
                ('parent_nationality', models.CharField(blank=True, max_length=100)),
                ('initial_quiz_score', models.PositiveIntegerField(blank=True, null=True)),
                ('inattention_score', models.PositiveIntegerField(blank=True, null=True)),
                ('hyperactivity_score', models.PositiveIntegerField(blank=True, null=True)),
                ('impulsivity_score', models.PositiveIntegerField(blank=True, null=True)),
                ('category_scores', models.JSONField(blank=True, default=dict)),
                ('role', models.CharField(choices=[('user', 'User'), ('admin', 'Admin'), ('super_admin', 'Super admin')], default='user', max_length=20)),
                ('learning_path_started_at', models.DateTimeField(blank=True, null=True)),
                ('physical_activities_started_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['role'], name='profile_role_idx')],
            },
        ),
        migrations.CreateModel(
            name='Quiz',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('INITIAL', 'Initial assessment')], default='INITIAL', max_length=20)),
                ('title', models.CharField(max_length=200)),
                ('title_ar', models.CharField(blank=True, max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name_plural': 'Quizzes',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='QuizQuestion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('question', models.TextField()),
                ('question_ar', models.TextField(blank=True)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('category_ar', models.CharField(blank=True, max_length=100)),
                ('order', models.PositiveIntegerField(default=0)),
                ('quiz', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='questions', to='movokids.quiz')),
            ],
            options={
                'ordering': ['order', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Game',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('matching', 'Matching Game'), ('memory', 'Memory Game'), ('sequence', 'Sequence Game'), ('attention', 'Attention Game'), ('sorting', 'Sorting Game'), ('aiming', 'Aiming Game'), ('pattern', 'Pattern Recognition'), ('simon', 'Simon Says'), ('reaction', 'Reaction Time'), ('color_switching', 'Color Switching')], max_length=20)),
                ('name', models.CharField(max_length=200)),
                ('name_ar', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('description_ar', models.TextField(blank=True)),
                ('difficulty_level', models.PositiveSmallIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(5)])),
                ('config', models.JSONField(blank=True, default=dict)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['type'], name='game_type_idx')],
                'constraints': [
                    models.CheckConstraint(
                        check=models.Q(('difficulty_level__gte', 1), ('difficulty_level__lte', 5)),
                        name='game_difficulty_between_1_and_5',
                        violation_error_message='Difficulty must be between 1 and 5.',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='LearningDay',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day_number', models.PositiveIntegerField(unique=True)),
                ('title', models.CharField(max_length=200)),
                ('title_ar', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('description_ar', models.TextField(blank=True)),
                ('required_correct_games', models.PositiveIntegerField(default=5)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['day_number'],
            },
        ),
        migrations.CreateModel(
            name='DayGame',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_in_day', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='day_games', to='movokids.game')),
                ('learning_day', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='day_games', to='movokids.learningday')),
            ],
            options={
                'ordering': ['learning_day', 'order_in_day'],
                'indexes': [models.Index(fields=['learning_day', 'order_in_day'], name='daygame_day_order_idx')],
            },
        ),
        migrations.AddField(
            model_name='learningday',
            name='games',
            field=models.ManyToManyField(related_name='learning_days', through='movokids.DayGame', to='movokids.game'),
        ),
        migrations.CreateModel(
            name='UserDayProgress',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_completed', models.BooleanField(default=False)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('games_correct_count', models.PositiveIntegerField(default=0)),
                ('current_game_order', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('learning_day', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress', to='movokids.learningday')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='day_progress', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'User day progress',
                'ordering': ['learning_day__day_number'],
                'indexes': [
                    models.Index(fields=['user', 'is_completed'], name='progress_user_done_idx'),
                    models.Index(fields=['updated_at'], name='progress_updated_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('user', 'learning_day'),
                        name='unique_progress_per_user_per_day',
                        violation_error_message='Progress for this day already exists.',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserGameAttempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_correct', models.BooleanField(default=False)),
                ('score', models.IntegerField(default=0)),
                ('time_taken_seconds', models.PositiveIntegerField(blank=True, null=True)),
                ('attempt_number', models.PositiveIntegerField(default=1)),
                ('mistakes_count', models.PositiveIntegerField(default=0)),
                ('game_data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('day_game', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='attempts', to='movokids.daygame')),
                ('game', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='movokids.game')),
                ('learning_day', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attempts', to='movokids.learningday')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='game_attempts', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'learning_day'], name='attempt_user_day_idx'),
                    models.Index(fields=['user', 'game', 'learning_day'], name='attempt_user_game_day_idx'),
                    models.Index(fields=['game', 'is_correct', '-score'], name='attempt_game_score_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PhysicalActivityVideo',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('video_number', models.PositiveIntegerField(unique=True)),
                ('title', models.CharField(max_length=200)),
                ('title_ar', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('description_ar', models.TextField(blank=True)),
                ('duration_seconds', models.PositiveIntegerField(blank=True, null=True)),
                ('thumbnail_url', models.URLField(blank=True)),
                ('storage_path', models.CharField(max_length=500)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['video_number'],
            },
        ),
        migrations.CreateModel(
            name='UserPhysicalActivityProgress',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('video_number', models.PositiveIntegerField()),
                ('watched_at', models.DateTimeField()),
                ('is_completed', models.BooleanField(default=True)),
                ('watch_duration_seconds', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity_progress', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'User physical activity progress',
                'ordering': ['-watched_at'],
                'indexes': [models.Index(fields=['user', '-watched_at'], name='activity_user_watched_idx')],
            },
        ),
        migrations.CreateModel(
            name='Coach',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('name_ar', models.CharField(blank=True, max_length=200)),
                ('title', models.CharField(blank=True, max_length=200)),
                ('title_ar', models.CharField(blank=True, max_length=200)),
                ('bio', models.TextField(blank=True)),
                ('bio_ar', models.TextField(blank=True)),
                ('image_url', models.URLField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name_plural': 'Coaches',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='GroupSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('title_ar', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('description_ar', models.TextField(blank=True)),
                ('platform', models.CharField(default='zoom', max_length=50)),
                ('meeting_link', models.URLField()),
                ('session_date', models.DateTimeField()),
                ('max_participants', models.PositiveIntegerField(default=10)),
                ('duration_minutes', models.PositiveIntegerField(default=45)),
                ('is_free', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('coach', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sessions', to='movokids.coach')),
            ],
            options={
                'ordering': ['session_date'],
                'indexes': [models.Index(fields=['session_date'], name='session_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='SessionEnrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='movokids.groupsession')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='session_enrollments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['created_at'],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('session', 'user'),
                        name='unique_enrollment_per_session',
                        violation_error_message='Already enrolled.',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('success', 'Success'), ('failed', 'Failed'), ('cancelled', 'Cancelled'), ('refunded', 'Refunded')], default='pending', max_length=20)),
                ('payment_method', models.CharField(blank=True, max_length=50)),
                ('subscription_type', models.CharField(choices=[('games', 'Games package'), ('group_sessions', 'Group sessions package'), ('individual_session', '1:1 session')], max_length=20)),
                ('package_id', models.PositiveIntegerField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('stripe_checkout_session_id', models.CharField(blank=True, db_index=True, max_length=255)),
                ('paymob_order_id', models.CharField(blank=True, db_index=True, max_length=64)),
                ('paymob_transaction_id', models.CharField(blank=True, max_length=64)),
                ('provider_response', models.JSONField(blank=True, default=dict)),
                ('error_message', models.TextField(blank=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'status'], name='payment_user_status_idx')],
                'constraints': [
                    models.CheckConstraint(
                        check=models.Q(('amount__gt', 0)),
                        name='payment_amount_positive',
                        violation_error_message='Payment amount must be positive.',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='SoloSessionRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('preferred_time', models.DateTimeField(blank=True, null=True)),
                ('scheduled_time', models.DateTimeField(blank=True, null=True)),
                ('duration_minutes', models.PositiveIntegerField(default=38)),
                ('notes', models.TextField(blank=True)),
                ('contact_phone', models.CharField(blank=True, max_length=20, validators=[movokids.validators.validate_phone_number])),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('payment_pending', 'Awaiting payment'), ('approved', 'Approved'), ('paid', 'Paid'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('meeting_link', models.URLField(blank=True)),
                ('admin_reason', models.TextField(blank=True)),
                ('responded_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('coach', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='solo_requests', to='movokids.coach')),
                ('payment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='solo_requests', to='movokids.payment')),
                ('responded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='solo_requests_responded', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='solo_session_requests', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'status'], name='solo_user_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('subscription_type', models.CharField(choices=[('games', 'Games package'), ('group_sessions', 'Group sessions package'), ('individual_session', '1:1 session')], max_length=20)),
                ('package_id', models.PositiveIntegerField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(max_length=3)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('payment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='subscriptions', to='movokids.payment')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subscriptions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'status', 'end_date'], name='sub_user_status_end_idx')],
                'constraints': [
                    models.CheckConstraint(
                        check=models.Q(('end_date__gt', models.F('start_date'))),
                        name='subscription_ends_after_start',
                        violation_error_message='A subscription must end after it starts.',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Blog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slug', models.SlugField(max_length=200, unique=True)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('content', models.TextField()),
                ('thumbnail_url', models.URLField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
