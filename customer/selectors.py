"""Customer lookups used by the order services."""

from django.http import Http404

from .models import Customer


def get_project_customer(*, project_id: int, customer_id: int) -> Customer:
    """Return the customer if it belongs to the project, else raise 404."""

    try:
        return Customer.objects.get(id=customer_id, project_id=project_id)
    except (Customer.DoesNotExist, ValueError, TypeError):
        raise Http404("Customer not found")
