"""Security log store: append-only events with paginated time-range queries.

All three query operations share one contract:

* ``page`` is 1-indexed and ``page_size`` must be positive; a ``page_size`` above
  ``LOG_QUERY_MAX_PAGE_SIZE`` is clamped to it.
* ``start_date`` / ``end_date`` are optional inclusive bounds; a reversed range is a
  ``ValidationError``.
* An unrecognised event code, or a missing user id in a user-scoped query, is a
  ``ValidationError``.
* No matching rows is an empty page, not an error.
* Results are ordered newest first; events sharing a timestamp keep reverse
  insertion order.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from authwave.config import settings
from authwave.database import commit_or_raise
from authwave.middleware.monitoring import record_security_event
from authwave.models.security_log import EventCode, SecurityLog
from authwave.services.errors import ValidationError
from authwave.utils.logger import logger
from authwave.utils.timeutils import to_naive_utc, utcnow


@dataclass
class LogPage:
    items: List[SecurityLog]
    page: int
    page_size: int
    total: int


def _event_code(event_code: Any) -> EventCode:
    try:
        return EventCode(event_code)
    except ValueError:
        raise ValidationError(
            f"Unrecognised event code '{event_code}'",
            details=[{"field": "event_code", "message": "unknown event code"}],
        )


def append(
    db: Session,
    project_id: str,
    user_id: Optional[str],
    event_code: Any,
    metadata: Optional[Dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
    conflict_message: Optional[str] = None,
) -> SecurityLog:
    """Insert one security event and commit it with any pending changes of ``db``.

    Storage failures surface as ``DatabaseError``, or as ``AlreadyExists`` carrying
    ``conflict_message`` when a pending row hits a uniqueness constraint.
    """
    code = _event_code(event_code)

    entry = SecurityLog(
        project_id=project_id,
        user_id=user_id,
        event_code=code.value,
        timestamp=to_naive_utc(timestamp) or utcnow(),
        log_metadata=metadata,
    )
    db.add(entry)
    commit_or_raise(db, conflict_message=conflict_message)

    record_security_event(code.value)
    logger.info(
        f"Security event recorded: {code.value}",
        extra={"project_id": project_id, "user_id": user_id, "event_code": code.value},
    )
    return entry


def _validate_window(
    page: int,
    page_size: int,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
) -> int:
    errors = []
    if not isinstance(page, int) or page < 1:
        errors.append({"field": "page", "message": "must be a positive integer"})
    if not isinstance(page_size, int) or page_size < 1:
        errors.append({"field": "page_size", "message": "must be a positive integer"})
    if start_date and end_date and end_date < start_date:
        errors.append({"field": "end_date", "message": "must not be earlier than start_date"})
    if errors:
        raise ValidationError("Invalid security log query", details=errors)
    return min(page_size, settings.LOG_QUERY_MAX_PAGE_SIZE)


def _query(
    db: Session,
    project_id: str,
    page: int,
    page_size: int,
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    user_id: Optional[str] = None,
    event_code: Optional[EventCode] = None,
) -> LogPage:
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    page_size = _validate_window(page, page_size, start_date, end_date)

    query = db.query(SecurityLog).filter(SecurityLog.project_id == project_id)
    if user_id is not None:
        query = query.filter(SecurityLog.user_id == user_id)
    if event_code is not None:
        query = query.filter(SecurityLog.event_code == event_code.value)
    if start_date:
        query = query.filter(SecurityLog.timestamp >= start_date)
    if end_date:
        query = query.filter(SecurityLog.timestamp <= end_date)

    total = query.count()
    items = (
        query.order_by(SecurityLog.timestamp.desc(), SecurityLog.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return LogPage(items=items, page=page, page_size=page_size, total=total)


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise ValidationError(
            "A user id is required for user-scoped log queries",
            details=[{"field": "user_id", "message": "required"}],
        )
    return user_id


def query_by_user(
    db: Session,
    project_id: str,
    user_id: Optional[str],
    page: int = 1,
    page_size: int = settings.LOG_QUERY_DEFAULT_PAGE_SIZE,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> LogPage:
    user_id = _require_user(user_id)
    return _query(db, project_id, page, page_size, start_date, end_date, user_id=user_id)


def query_by_event(
    db: Session,
    project_id: str,
    event_code: Any,
    page: int = 1,
    page_size: int = settings.LOG_QUERY_DEFAULT_PAGE_SIZE,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> LogPage:
    code = _event_code(event_code)
    return _query(db, project_id, page, page_size, start_date, end_date, event_code=code)


def query_by_user_and_event(
    db: Session,
    project_id: str,
    user_id: Optional[str],
    event_code: Any,
    page: int = 1,
    page_size: int = settings.LOG_QUERY_DEFAULT_PAGE_SIZE,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> LogPage:
    user_id = _require_user(user_id)
    code = _event_code(event_code)
    return _query(
        db, project_id, page, page_size, start_date, end_date, user_id=user_id, event_code=code
    )
