"""Best-effort cleanup of product files in the configured storage backend."""

import logging
from typing import Iterable

from django.core.files.storage import storages

logger = logging.getLogger("opsdesk.catalog")


def delete_stored_files(keys: Iterable[str]) -> int:
    """Delete each key from the default storage and return how many succeeded.

    Failures are logged and skipped; the database state is already final.
    """

    storage = storages["default"]
    deleted = 0
    for key in keys:
        try:
            storage.delete(key)
        except Exception:
            logger.warning(
                "catalog.file_delete_failed",
                extra={"event": "catalog.file_delete_failed", "storage_key": key},
                exc_info=True,
            )
            continue
        deleted += 1
    return deleted
