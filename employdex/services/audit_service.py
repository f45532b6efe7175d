"""Audit service — activity log sink, domain events, and log queries.

Mutations hand an :class:`AuditEntry` and a domain event to an
:class:`AuditSink` once their transaction has committed. Delivery is best
effort: sink failures are logged and never propagate into the request that
caused them.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from fastapi import BackgroundTasks, Request
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from employdex.models.activity_log import ActivityLog
from employdex.models.user import User

logger = logging.getLogger("employdex.audit")

EventHandler = Callable[[str, Dict[str, Any]], None]


@dataclass
class AuditEntry:
    """One activity-log record, e.g. action="UPDATE_ROLE", entity="role"."""

    action: str
    entity: str
    entity_id: Optional[Any] = None
    user_id: Optional[int] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None: ...

    def emit(self, event: str, payload: Dict[str, Any]) -> None: ...


class EventBus:
    """In-process subscribers for domain events such as ``role:updated``."""

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("event %s %s", event, json.dumps(payload, default=str))
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(event, payload)
            except Exception:
                logger.exception("Handler for event %s failed", event)


class DatabaseAuditSink:
    """Writes activity-log rows in a session of its own."""

    def __init__(self, session_factory: sessionmaker, bus: Optional[EventBus] = None):
        self.session_factory = session_factory
        self.bus = bus or EventBus()

    def record(self, entry: AuditEntry) -> None:
        db = self.session_factory()
        try:
            db.add(
                ActivityLog(
                    user_id=entry.user_id,
                    action=entry.action,
                    entity=entry.entity,
                    entity_id=str(entry.entity_id) if entry.entity_id is not None else None,
                    details_json=json.dumps(entry.details, default=str) if entry.details else None,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to record activity %s on %s", entry.action, entry.entity)
        finally:
            db.close()

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self.bus.publish(event, payload)

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self.bus.subscribe(event, handler)


@dataclass
class RecordingAuditSink:
    """Keeps entries and events in memory for assertions."""

    entries: List[AuditEntry] = field(default_factory=list)
    events: List[tuple] = field(default_factory=list)

    def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def actions(self) -> List[str]:
        return [entry.action for entry in self.entries]

    def event_names(self) -> List[str]:
        return [event for event, _ in self.events]


class Auditor:
    """Request-scoped handle on the sink.

    Stamps entries with the acting user, client IP and user agent. With
    ``background`` set, delivery is queued to run after the response is
    sent; otherwise it happens inline.
    """

    def __init__(
        self,
        sink: AuditSink,
        user_id: Optional[int] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        background: Optional[BackgroundTasks] = None,
    ):
        self.sink = sink
        self.user_id = user_id
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.background = background

    @classmethod
    def from_request(
        cls,
        sink: AuditSink,
        request: Request,
        user_id: Optional[int] = None,
        background: Optional[BackgroundTasks] = None,
    ) -> "Auditor":
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500]
        return cls(sink, user_id=user_id, ip_address=ip, user_agent=ua, background=background)

    def _dispatch(self, func: Callable, *args) -> None:
        if self.background is not None:
            self.background.add_task(func, *args)
        else:
            func(*args)

    def record(
        self,
        action: str,
        entity: str,
        entity_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        user_id: Optional[int] = None,
    ) -> None:
        entry = AuditEntry(
            action=action,
            entity=entity,
            entity_id=entity_id,
            user_id=user_id if user_id is not None else self.user_id,
            details=details,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )
        self._dispatch(self.sink.record, entry)

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        self._dispatch(self.sink.emit, event, payload)


class AuditService:
    """Read side of the activity log."""

    @staticmethod
    def query_logs(
        db: Session,
        action: Optional[str] = None,
        entity: Optional[str] = None,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Query activity logs with filters and pagination, newest first."""
        query = db.query(ActivityLog, User).outerjoin(User, ActivityLog.user_id == User.id)

        if action:
            query = query.filter(ActivityLog.action == action)
        if entity:
            query = query.filter(ActivityLog.entity == entity)
        if user_id:
            query = query.filter(ActivityLog.user_id == user_id)
        if start_date:
            query = query.filter(ActivityLog.created_at >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            query = query.filter(
                ActivityLog.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
            )

        total = query.count()
        rows = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        return {
            "logs": [AuditService.serialize(log, user) for log, user in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "pages": (total + limit - 1) // limit,
        }

    @staticmethod
    def serialize(log: ActivityLog, user: Optional[User]) -> Dict[str, Any]:
        details = None
        if log.details_json:
            try:
                details = json.loads(log.details_json)
            except ValueError:
                details = log.details_json
        return {
            "id": log.id,
            "user_id": log.user_id,
            "user_email": user.email if user else None,
            "user_name": user.full_name if user else None,
            "action": log.action,
            "entity": log.entity,
            "entity_id": log.entity_id,
            "details": details,
            "ip_address": log.ip_address,
            "user_agent": log.user_agent,
            "created_at": log.created_at,
        }

    @staticmethod
    def distinct_actions(db: Session) -> List[str]:
        rows = db.query(ActivityLog.action).distinct().order_by(ActivityLog.action).all()
        return [row[0] for row in rows]

    @staticmethod
    def distinct_entities(db: Session) -> List[str]:
        rows = db.query(ActivityLog.entity).distinct().order_by(ActivityLog.entity).all()
        return [row[0] for row in rows]

    @staticmethod
    def stats(db: Session, days: int = 7, top: int = 5) -> Dict[str, Any]:
        """Action counts, zero-filled daily activity, and the most active users."""
        action_counts = (
            db.query(ActivityLog.action, func.count(ActivityLog.id))
            .group_by(ActivityLog.action)
            .order_by(func.count(ActivityLog.id).desc())
            .all()
        )

        today = datetime.now(timezone.utc).date()
        first_day = today - timedelta(days=days - 1)
        day_column = func.date(ActivityLog.created_at)
        daily_rows = (
            db.query(day_column, func.count(ActivityLog.id))
            .filter(ActivityLog.created_at >= datetime.combine(first_day, datetime.min.time()))
            .group_by(day_column)
            .all()
        )
        per_day = {str(day): count for day, count in daily_rows}
        daily_activity = []
        for offset in range(days):
            day = (first_day + timedelta(days=offset)).isoformat()
            daily_activity.append({"date": day, "count": per_day.get(day, 0)})

        top_rows = (
            db.query(User.id, User.email, User.first_name, User.last_name, func.count(ActivityLog.id))
            .join(ActivityLog, ActivityLog.user_id == User.id)
            .group_by(User.id, User.email, User.first_name, User.last_name)
            .order_by(func.count(ActivityLog.id).desc())
            .limit(top)
            .all()
        )

        return {
            "action_counts": [{"action": action, "count": count} for action, count in action_counts],
            "daily_activity": daily_activity,
            "top_users": [
                {
                    "user_id": uid,
                    "email": email,
                    "name": f"{first} {last}".strip(),
                    "count": count,
                }
                for uid, email, first, last, count in top_rows
            ],
            "total_logs": db.query(func.count(ActivityLog.id)).scalar() or 0,
        }


audit_service = AuditService()
