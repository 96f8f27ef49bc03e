from rest_framework import serializers


class ProjectQuerySerializer(serializers.Serializer):
    """Validates the ``project_id`` query parameter of project-scoped lists."""

    project_id = serializers.IntegerField(min_value=1)
