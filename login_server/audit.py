"""
Audit logging for the token endpoint. Security-relevant events only; no tokens, secrets or passwords.
Failed grants record the internal reason (unknown_client vs bad_secret, ...) that the caller never sees.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from login_server.database import get_db
from login_server.models import AuditLog

logger = logging.getLogger(__name__)

EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_DENIED = "token_denied"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def get_client_ip(request: Request | None) -> str | None:
    """Client IP if available (request.client.host). Forwarding headers are not trusted."""
    if request is None or request.client is None:
        return None
    return getattr(request.client, "host", None)


def log_audit(
    db: Session,
    event_type: str,
    *,
    grant_type: str | None = None,
    client_id: str | None = None,
    subject: str | None = None,
    ip: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
    reason: str | None = None,
) -> None:
    """Append one audit record and mirror it to the application log."""
    logger.info(
        "audit event=%s outcome=%s grant_type=%s client_id=%s sub=%s reason=%s",
        event_type,
        outcome,
        grant_type,
        client_id,
        subject,
        reason,
    )
    db.add(
        AuditLog(
            event_type=event_type,
            grant_type=grant_type,
            client_id=client_id,
            subject=subject,
            ip=ip,
            outcome=outcome,
            reason=reason,
        )
    )
    db.commit()


router = APIRouter(tags=["audit"])


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    client_id: str | None = None,
    db: Session = Depends(get_db),
):
    """
    List recent audit events, most recent first. Only mounted when OAUTH_AUDIT_ENDPOINT is set.
    The internal failure reason stays in the table and the log.
    """
    q = db.query(AuditLog).order_by(AuditLog.id.desc())
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    if outcome:
        q = q.filter(AuditLog.outcome == outcome)
    if client_id:
        q = q.filter(AuditLog.client_id == client_id)
    rows = q.limit(min(max(1, limit), 500)).all()
    return [
        {
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "event_type": r.event_type,
            "grant_type": r.grant_type,
            "client_id": r.client_id,
            "subject": r.subject,
            "ip": r.ip,
            "outcome": r.outcome,
        }
        for r in rows
    ]
