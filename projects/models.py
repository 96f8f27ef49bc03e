"""Project tenancy models.

A project owns its catalog, customers and orders. Users act inside a
project through a ``ProjectMember`` row carrying their role.
"""

from common.choices import ProjectRole
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Project(TimeStampedModel):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class ProjectMember(TimeStampedModel):
    ROLE_ADMIN = ProjectRole.ADMIN
    ROLE_MEMBER = ProjectRole.MEMBER
    ROLE_CHOICES = ProjectRole.choices

    project = models.ForeignKey(Project, related_name="members", on_delete=models.CASCADE)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="project_memberships", on_delete=models.CASCADE)
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_MEMBER)

    class Meta:
        ordering = ["project_id", "id"]
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="unique_member_per_project"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.user_id}@{self.project_id} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN


class Agent(TimeStampedModel):
    """Automation agent configured for a project."""

    project = models.ForeignKey(Project, related_name="agents", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)

    class Meta:
        ordering = ["name", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name


class AgentWorkflow(TimeStampedModel):
    """Workflow graph of an agent.

    ``nodes`` is a list of node dicts; product-aware nodes list the products
    they use under ``data.products`` as ``{"id": <product id>, ...}``.
    """

    agent = models.ForeignKey(Agent, related_name="workflows", on_delete=models.CASCADE)
    name = models.CharField(max_length=200, blank=True)
    nodes = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["agent_id", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return self.name or f"Workflow#{self.id}"

    def references_product(self, product_id) -> bool:
        for node in self.nodes or []:
            if not isinstance(node, dict):
                continue
            data = node.get("data") or {}
            for product in data.get("products") or []:
                if isinstance(product, dict) and str(product.get("id")) == str(product_id):
                    return True
        return False
