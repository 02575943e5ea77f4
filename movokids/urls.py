from django.urls import path

from . import admin_views, payment_views, views

urlpatterns = [
    # Home and dashboard
    path("", views.home, name="home"),
    path("dashboard/", views.dashboard, name="dashboard"),

    # Authentication
    path("register/", views.register_view, name="register"),
    path("login/", views.custom_login_view, name="login"),
    path("logout/", views.custom_logout_view, name="logout"),
    path("api/auth/check/", views.auth_check, name="auth_check"),

    # Onboarding quiz
    path("quiz/", views.quiz, name="quiz"),

    # Learning path
    path("learning-path/", views.learning_path_view, name="learning_path"),
    path("learning-path/day/<int:day_number>/", views.learning_day_view, name="learning_day"),
    path("api/learning-path/attempts/", views.record_attempt_api, name="record_attempt"),
    path("api/learning-path/stats/", views.learning_path_stats_api, name="learning_path_stats"),
    path("api/learning-path/day/<int:day_number>/", views.day_details_api, name="day_details"),
    path("api/learning-path/day/<int:day_number>/reset/", views.reset_day_api, name="reset_day"),
    path("api/games/<int:game_id>/leaderboard/", views.game_leaderboard_api, name="game_leaderboard"),

    # Physical activities
    path("physical-activities/", views.physical_activities_view, name="physical_activities"),
    path("api/physical-activities/today/", views.todays_videos_api, name="todays_videos"),
    path("api/physical-activities/watch/", views.record_watch_api, name="record_watch"),
    path("api/physical-activities/stats/", views.physical_activity_stats_api, name="physical_activity_stats"),

    # Group sessions and 1:1 requests
    path("sessions/", views.sessions_view, name="sessions"),
    path("sessions/<int:pk>/enroll/", views.session_enroll, name="session_enroll"),
    path("sessions/<int:pk>/cancel/", views.session_cancel, name="session_cancel"),
    path("api/sessions/", views.sessions_api, name="sessions_api"),
    path("solo-sessions/", views.solo_sessions_view, name="solo_sessions"),
    path("api/solo-sessions/", views.my_solo_requests_api, name="my_solo_requests"),
    path("api/solo-sessions/<int:pk>/pay/", views.solo_session_pay, name="solo_session_pay"),

    # Pricing and payments
    path("pricing/", payment_views.pricing, name="pricing"),
    path("payment/checkout/", payment_views.checkout, name="payment_checkout"),
    path("payment/result/", payment_views.payment_result, name="payment_result"),
    path("api/payments/create/", payment_views.create_payment_api, name="create_payment"),
    path("api/payments/", payment_views.my_payments_api, name="my_payments"),
    path("api/payments/<int:pk>/", payment_views.payment_detail_api, name="payment_detail"),
    path("api/payments/<int:pk>/checkout-url/", payment_views.payment_checkout_url_api, name="payment_checkout_url"),
    path("api/payments/session-details/", payment_views.session_details_api, name="payment_session_details"),
    path("api/payments/stripe-webhook/", payment_views.stripe_webhook, name="stripe_webhook"),
    path("api/payments/webhook/", payment_views.paymob_webhook, name="paymob_webhook"),
    path("api/payments/callback/", payment_views.paymob_callback, name="paymob_callback"),

    # Subscriptions
    path("api/subscriptions/", payment_views.my_subscriptions_api, name="my_subscriptions"),
    path("api/subscriptions/check/", payment_views.subscription_status, name="subscription_status"),
    path("api/subscriptions/update-expired/", payment_views.update_expired_subscriptions_api,
         name="update_expired_subscriptions"),

    # Blog
    path("blogs/", views.blog_list, name="blog_list"),
    path("blogs/<slug:slug>/", views.blog_detail, name="blog_detail"),

    # Back-office pages
    path("backoffice/", admin_views.backoffice_dashboard, name="backoffice"),
    path("backoffice/users/<int:pk>/", admin_views.backoffice_user_detail, name="backoffice_user"),

    # Back-office JSON endpoints
    path("api/admin/stats/", admin_views.stats_api, name="admin_stats"),
    path("api/admin/users/", admin_views.users_api, name="admin_users"),
    path("api/admin/users/<int:pk>/", admin_views.user_detail_api, name="admin_user_detail"),
    path("api/admin/quiz-analytics/", admin_views.quiz_analytics_api, name="admin_quiz_analytics"),
    path("api/admin/days/", admin_views.days_api, name="admin_days"),
    path("api/admin/days/<int:pk>/", admin_views.day_api, name="admin_day"),
    path("api/admin/days/<int:pk>/games/", admin_views.day_games_api, name="admin_day_games"),
    path("api/admin/days/<int:pk>/games/reorder/", admin_views.reorder_day_games_api, name="admin_reorder_day_games"),
    path("api/admin/day-games/<int:pk>/", admin_views.day_game_api, name="admin_day_game"),
    path("api/admin/games/", admin_views.games_api, name="admin_games"),
    path("api/admin/games/<int:pk>/", admin_views.game_api, name="admin_game"),
    path("api/admin/videos/", admin_views.videos_api, name="admin_videos"),
    path("api/admin/videos/<int:pk>/", admin_views.video_api, name="admin_video"),
    path("api/admin/sessions/", admin_views.admin_sessions_api, name="admin_sessions"),
    path("api/admin/sessions/<int:pk>/enrollments/", admin_views.session_enrollments_api,
         name="admin_session_enrollments"),
    path("api/admin/solo-requests/", admin_views.solo_requests_api, name="admin_solo_requests"),
    path("api/admin/solo-requests/<int:pk>/respond/", admin_views.respond_solo_request_api,
         name="admin_respond_solo_request"),
    path("api/admin/blogs/", admin_views.admin_blogs_api, name="admin_blogs"),
    path("api/admin/blogs/<slug:slug>/", admin_views.admin_blog_api, name="admin_blog"),
    path("api/blogs/upload/", admin_views.blog_upload_api, name="blog_upload"),
    path("api/blogs/delete/", admin_views.blog_delete_api, name="blog_delete"),
]
