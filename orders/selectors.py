"""Read-side queries for orders."""

from decimal import Decimal
from typing import Iterable, Optional

from django.db.models import Count, Prefetch, Q, QuerySet
from django.http import Http404

from .models import Order, OrderItem, OrderServiceItem


def list_orders(
    *,
    project_id: int,
    search: Optional[str] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    payment: Optional[str] = None,
    is_paid: bool = False,
    is_unpaid: bool = False,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    selected_statuses: Optional[Iterable[str]] = None,
) -> QuerySet[Order]:
    """Return a project's orders, newest first, annotated with line counts.

    ``selected_statuses`` overrides ``status``; ``is_paid``/``is_unpaid``
    override ``payment``.
    """

    qs = Order.objects.filter(project_id=project_id)
    if search:
        qs = qs.filter(
            Q(order_number__icontains=search) | Q(customer_name__icontains=search) | Q(customer__name__icontains=search)
        )
    if type:
        qs = qs.filter(type=type)
    statuses = [s for s in (selected_statuses or []) if s]
    if statuses:
        qs = qs.filter(status__in=statuses)
    elif status:
        qs = qs.filter(status=status)
    if is_unpaid:
        qs = qs.filter(payment=Order.PAYMENT_UNPAID)
    elif is_paid:
        qs = qs.filter(payment=Order.PAYMENT_PAID)
    elif payment:
        qs = qs.filter(payment=payment)
    if min_amount is not None:
        qs = qs.filter(total_amount__gte=min_amount)
    if max_amount is not None:
        qs = qs.filter(total_amount__lte=max_amount)
    return qs.annotate(
        items_count=Count("items", distinct=True),
        services_count=Count("services", distinct=True),
    ).order_by("-created_at", "-id")


def get_order(order_id: int) -> Order:
    """Return an order with lines, products, services and their files loaded."""

    qs = Order.objects.select_related("customer").prefetch_related(
        Prefetch(
            "items",
            queryset=OrderItem.objects.select_related("product", "warehouse").prefetch_related("product__files"),
        ),
        Prefetch(
            "services",
            queryset=OrderServiceItem.objects.select_related("service").prefetch_related("service__files"),
        ),
    )
    try:
        return qs.get(id=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise Http404("Order not found")
