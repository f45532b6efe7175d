"""Shared API dependencies."""

from typing import Optional

from fastapi import BackgroundTasks, Depends, Request

from employdex.core.access import Claims
from employdex.core.security import get_optional_claims
from employdex.services.audit_service import AuditSink, Auditor


def get_audit_sink(request: Request) -> AuditSink:
    return request.app.state.audit_sink


def get_auditor(
    request: Request,
    background_tasks: BackgroundTasks,
    sink: AuditSink = Depends(get_audit_sink),
    claims: Optional[Claims] = Depends(get_optional_claims),
) -> Auditor:
    """Auditor bound to the caller; delivery runs after the response."""
    return Auditor.from_request(
        sink,
        request,
        user_id=claims.id if claims else None,
        background=background_tasks,
    )
