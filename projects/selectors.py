"""Read helpers for project data used by other apps."""

from django.db.models import QuerySet

from .models import Agent, AgentWorkflow


def list_active_workflows(*, project_id: int) -> QuerySet[AgentWorkflow]:
    return AgentWorkflow.objects.filter(agent__project_id=project_id, is_active=True).select_related("agent")


def agents_using_product(*, project_id: int, product_id: int) -> list[Agent]:
    """Return agents whose active workflows reference the product, in name order."""

    agents = {}
    for workflow in list_active_workflows(project_id=project_id):
        if workflow.references_product(product_id):
            agents[workflow.agent_id] = workflow.agent
    return sorted(agents.values(), key=lambda agent: (agent.name, agent.id))
