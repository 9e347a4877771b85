"""Submission store: the create/list boundary for finished surveys.

The survey core only relies on the :class:`SubmissionStore` protocol. The
in-memory :class:`ThreadSafeSubmissionStore` is the default implementation
used by the chat app and by tests; any remote backend exposing the same two
calls can be swapped in.
"""
from __future__ import annotations

import dataclasses
import datetime
import logging
import threading
import uuid
from typing import List, Optional, Protocol

from survey_chatbot.exceptions import SubmissionError
from survey_chatbot.session_data import SubmissionRecord

logger = logging.getLogger(__name__)

NEWEST_FIRST = "-created_date"
OLDEST_FIRST = "created_date"


class SubmissionStore(Protocol):
    """Create/list interface of a survey submission backend."""

    def create(self, record: SubmissionRecord) -> SubmissionRecord:
        """Persist *record*; return it with ``submission_id``/``created_at`` set."""
        ...

    def list(
        self, order_by: str = NEWEST_FIRST, limit: Optional[int] = 100
    ) -> List[SubmissionRecord]:
        """Return stored records ordered by creation date."""
        ...


class ThreadSafeSubmissionStore:
    """In-memory :class:`SubmissionStore` guarded by a lock."""

    def __init__(self, max_records: Optional[int] = None):
        self._records: List[SubmissionRecord] = []
        self._lock = threading.Lock()
        # None == unlimited
        self._max_records = max_records if (max_records or 0) > 0 else None

    def create(self, record: SubmissionRecord) -> SubmissionRecord:
        with self._lock:
            if self._max_records is not None and len(self._records) >= self._max_records:
                raise SubmissionError("Submission store is full.")
            stored = dataclasses.replace(
                record,
                answers=dict(record.answers),
                submission_id=str(uuid.uuid4()),
                created_at=datetime.datetime.now(datetime.timezone.utc),
            )
            self._records.append(stored)
        return stored

    def list(
        self, order_by: str = NEWEST_FIRST, limit: Optional[int] = 100
    ) -> List[SubmissionRecord]:
        if order_by not in (NEWEST_FIRST, OLDEST_FIRST):
            raise ValueError(f"Unsupported order_by '{order_by}'.")
        with self._lock:
            # Insertion order is creation order; reverse instead of sorting so
            # records created within the same clock tick keep a stable order.
            records = list(self._records)
        if order_by == NEWEST_FIRST:
            records.reverse()
        if limit is not None:
            records = records[: max(0, limit)]
        return records

    def count(self) -> int:
        with self._lock:
            return len(self._records)


def submit_record(store: SubmissionStore, record: SubmissionRecord) -> SubmissionRecord:
    """Hand *record* to *store*.

    Failures are logged and re-raised as :class:`SubmissionError`; there is no
    retry. Callers decide whether to resend or tell the respondent.
    """
    try:
        stored = store.create(record)
    except SubmissionError:
        logger.error(
            "Submission store rejected %s survey record", record.category.value
        )
        raise
    except Exception as exc:
        logger.error(
            "Failed to store %s survey record: %s",
            record.category.value,
            exc,
            exc_info=True,
        )
        raise SubmissionError(f"Failed to store survey record: {exc}") from exc

    logger.info(
        "survey_submitted",
        extra={
            "submission_id": stored.submission_id,
            "category": stored.category.value,
            "completed": stored.completed,
        },
    )
    return stored


def fetch_records(
    store: SubmissionStore, *, order_by: str = NEWEST_FIRST, limit: Optional[int] = 100
) -> List[SubmissionRecord]:
    """List records from *store*, wrapping backend failures in :class:`SubmissionError`."""
    try:
        return store.list(order_by=order_by, limit=limit)
    except SubmissionError:
        raise
    except Exception as exc:
        logger.error("Failed to list survey records: %s", exc, exc_info=True)
        raise SubmissionError(f"Failed to list survey records: {exc}") from exc
