from django.apps import AppConfig


class MovokidsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'movokids'
    verbose_name = 'MovoKids'

    def ready(self):
        # Blog cache invalidation receivers
        from . import blogs  # noqa: F401
