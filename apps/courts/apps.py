from django.apps import AppConfig  # type: ignore


class CourtsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.courts"
    label = "courts"
    verbose_name = "Courts"
