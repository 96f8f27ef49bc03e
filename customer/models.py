"""Customer domain models.

Customers belong to a project. Orders copy the name and email at order
time, so edits here never rewrite order history.
"""

from django.core.validators import RegexValidator
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Customer(TimeStampedModel):
    project = models.ForeignKey("projects.Project", related_name="customers", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +14155552671)")],
    )

    class Meta:
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["project", "name"], name="customer_project_name_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name
