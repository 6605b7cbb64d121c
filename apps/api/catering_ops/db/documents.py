"""
Helpers for JSON document columns.

Schedules, dispatches and recipes are stored as whole JSON documents on rows
that carry an optimistic-concurrency ``version`` column. Edits follow one
pattern: copy the document, change the copy, assign it back. On flush the
UPDATE is conditioned on the version that was loaded, so a writer racing
another request fails with ``StaleDataError`` (returned to the client as 409)
instead of silently overwriting the other request's change.
"""
import copy
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from sqlalchemy.orm.attributes import flag_modified

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Current UTC instant as an ISO-8601 string, the format stored inside documents."""
    return utc_now().isoformat()


def edit_document(row: Any, attr: str, mutate: Callable[[Any], T]) -> T:
    """
    Apply ``mutate`` to a deep copy of ``row.<attr>`` and store the result.

    Returns whatever ``mutate`` returns. The row is marked dirty even if the
    mutation turned out to be a no-op, so the version counter still advances.
    """
    document = copy.deepcopy(getattr(row, attr))
    result = mutate(document)
    setattr(row, attr, document)
    flag_modified(row, attr)
    return result
