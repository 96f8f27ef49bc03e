from django.apps import AppConfig


class ProjectsConfig(AppConfig):
    """Projects, memberships and the agent workflows that reference catalog data."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "projects"
    verbose_name = "Projects"
