"""Selectors for the inventory domain."""

from datetime import date, datetime, time, timedelta

from django.db.models import QuerySet, Sum
from django.utils import timezone

from .models import StockItem, StockMovement


def list_movements_for_product(*, product_id: int, created_on: date | None = None) -> QuerySet[StockMovement]:
    """Return a product's ledger, newest first, optionally limited to one calendar day."""

    qs = StockMovement.objects.filter(product_id=product_id).select_related("warehouse", "order")
    if created_on:
        start = timezone.make_aware(datetime.combine(created_on, time.min))
        qs = qs.filter(created_at__gte=start, created_at__lt=start + timedelta(days=1))
    return qs.order_by("-created_at", "-id")


def ledger_discrepancies(*, product_id: int | None = None) -> list[dict]:
    """Compare each stock row with the sum of its ledger deltas.

    Returns one dict per (product, warehouse) whose ledger does not add up
    to the current quantity.
    """

    items = StockItem.objects.select_related("product", "warehouse").order_by("product_id", "warehouse_id")
    movements = StockMovement.objects.filter(warehouse__isnull=False)
    if product_id:
        items = items.filter(product_id=product_id)
        movements = movements.filter(product_id=product_id)
    totals = {
        (row["product_id"], row["warehouse_id"]): int(row["total"] or 0)
        for row in movements.values("product_id", "warehouse_id").annotate(total=Sum("quantity"))
    }
    issues = []
    for item in items:
        ledger_total = totals.pop((item.product_id, item.warehouse_id), 0)
        if ledger_total != int(item.quantity):
            issues.append(
                {
                    "product_id": item.product_id,
                    "product": item.product.name,
                    "warehouse_id": item.warehouse_id,
                    "warehouse": item.warehouse.label,
                    "stock": int(item.quantity),
                    "ledger": ledger_total,
                }
            )
    # Ledger rows for pairings whose stock row is gone must net to zero.
    for (pid, wid), total in totals.items():
        if total != 0:
            issues.append(
                {"product_id": pid, "product": "", "warehouse_id": wid, "warehouse": "", "stock": 0, "ledger": total}
            )
    return issues


# EOF
