"""In-memory application repository for tests and local development."""

import copy
import threading
from typing import Any, Dict, Mapping, Optional

import structlog

from admissions_backend.core.error_handling import NotFoundError, StorageError
from admissions_backend.schemas.application import ApplicationRecord
from admissions_backend.schemas.roster import Page

from .base import ApplicationRepository, ArrayEntry, build_page, validate_update

logger = structlog.get_logger(__name__)


class InMemoryApplicationRepository(ApplicationRepository):
    """Dict-backed repository. Records are copied on the way in and out."""

    def __init__(self):
        self._records: Dict[str, ApplicationRecord] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[ApplicationRecord]:
        with self._lock:
            record = self._records.get(user_id)
            return record.model_copy(deep=True) if record else None

    def create(self, record: ApplicationRecord) -> ApplicationRecord:
        with self._lock:
            if record.user_id in self._records:
                logger.error("Record creation failed", user_id=record.user_id, error="duplicate key")
                raise StorageError(f"Application for {record.user_id} already exists")
            self._records[record.user_id] = record.model_copy(deep=True)

        logger.info("Record created", user_id=record.user_id)
        return record.model_copy(deep=True)

    def update(
        self,
        user_id: str,
        changes: Mapping[str, Any],
        appends: Optional[Mapping[str, ArrayEntry]] = None,
    ) -> None:
        validate_update(changes, appends)

        with self._lock:
            stored = self._records.get(user_id)
            if stored is None:
                logger.warning("Record not found for update", user_id=user_id)
                raise NotFoundError(user_id=user_id)

            # Apply to a copy so a failing assignment leaves storage untouched
            record = stored.model_copy(deep=True)
            for path, value in changes.items():
                _assign(record, path, value)
            for path, entry in (appends or {}).items():
                _resolve(record, path).append(entry.model_copy(deep=True))

            self._records[user_id] = record

        logger.debug(
            "Record updated",
            user_id=user_id,
            fields=sorted(changes),
            appended=sorted(appends or {}),
        )

    def list_page(self, offset: int = 0, limit: int = 100) -> Page[ApplicationRecord]:
        with self._lock:
            by_id = sorted(self._records.values(), key=lambda r: r.user_id)
            ordered = sorted(by_id, key=lambda r: r.last_updated_at, reverse=True)
            items = [r.model_copy(deep=True) for r in ordered[offset:offset + limit]]
            total = len(ordered)
        return build_page(items, total, offset, limit)


def _assign(record: ApplicationRecord, path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    target = record
    for name in parents:
        target = getattr(target, name)
    setattr(target, leaf, copy.deepcopy(value))


def _resolve(record: ApplicationRecord, path: str):
    target = record
    for name in path.split("."):
        target = getattr(target, name)
    return target
