"""Transaction helpers."""

import time
from contextlib import contextmanager

from django.db import connection, transaction
from rest_framework import status
from rest_framework.exceptions import APIException


class TransactionTimeout(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "The operation took too long and was rolled back. Please try again."
    default_code = "transaction_timeout"


@contextmanager
def atomic_with_timeout(seconds: float):
    """Run the block in ``transaction.atomic`` and roll it back if it outlives ``seconds``.

    The wall-clock deadline is checked when the block finishes; overrunning
    raises ``TransactionTimeout`` inside the atomic block, so nothing is
    committed. On PostgreSQL each statement and lock wait is also capped with
    ``SET LOCAL``, and from version 17 the whole transaction is capped by the
    server as well. A falsy ``seconds`` disables the bound.
    """

    deadline = time.monotonic() + float(seconds) if seconds else None
    with transaction.atomic():
        if connection.vendor == "postgresql" and seconds:
            millis = int(float(seconds) * 1000)
            with connection.cursor() as cursor:
                cursor.execute(f"SET LOCAL statement_timeout = {millis}")
                cursor.execute(f"SET LOCAL lock_timeout = {millis}")
                if connection.pg_version >= 170000:
                    cursor.execute(f"SET LOCAL transaction_timeout = {millis}")
        yield
        if deadline is not None and time.monotonic() > deadline:
            raise TransactionTimeout()
