"""Human-readable sequential identifiers ("o001", "m042", ...).

Each scope owns one ``SequenceCounter`` row. Allocation locks that row and
increments it, which replaces any "read the newest row and add one" lookup.
"""

from django.db import IntegrityError, transaction

from .models import SequenceCounter


def format_identifier(prefix: str, value: int, pad: int = 3) -> str:
    return f"{prefix}{value:0{pad}d}"


@transaction.atomic
def next_value(scope: str) -> int:
    """Increment and return the counter for ``scope``, creating it at 1."""

    counter = SequenceCounter.objects.select_for_update().filter(scope=scope).first()
    if counter is None:
        try:
            with transaction.atomic():
                return SequenceCounter.objects.create(scope=scope, last_value=1).last_value
        except IntegrityError:
            # Created concurrently; fall through to the locked increment.
            counter = SequenceCounter.objects.select_for_update().get(scope=scope)
    counter.last_value = int(counter.last_value) + 1
    counter.save(update_fields=["last_value", "updated_at"])
    return counter.last_value


def next_identifier(*, scope: str, prefix: str, pad: int = 3) -> str:
    return format_identifier(prefix, next_value(scope), pad)


def drop_scope(scope: str) -> None:
    SequenceCounter.objects.filter(scope=scope).delete()


def order_scope(project_id: int) -> str:
    return f"order:project:{project_id}"


def movement_scope(product_id: int) -> str:
    return f"movement:product:{product_id}"


def warehouse_scope(project_id: int) -> str:
    return f"warehouse:project:{project_id}"
