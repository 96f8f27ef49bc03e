"""Shared persistence primitives."""

from django.db import models


class SequenceCounter(models.Model):
    """Last value handed out for a named scope (e.g. ``order:project:7``).

    Rows are incremented under a row lock in the same transaction as the
    write that consumes the value, so two writers never receive the same
    number.
    """

    scope = models.CharField(max_length=120, unique=True)
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["scope"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.scope}={self.last_value}"
