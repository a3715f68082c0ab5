"""Bounded audit trail, most recent entry first."""

from __future__ import annotations

import logging
import uuid

from config import AUDIT_LOG_LIMIT
from models import AuditLog, CurrentUser, Snapshot, utc_now_iso

logger = logging.getLogger("nexus.audit")


def build_entry(actor: CurrentUser, action: str, details: str, module: str) -> AuditLog:
    return AuditLog(
        id=f"LOG-{uuid.uuid4().hex[:12].upper()}",
        action=action,
        user_id=actor.id,
        user_name=actor.name,
        timestamp=utc_now_iso(),
        details=details,
        module=module,
    )


def append_entry(
    snapshot: Snapshot,
    actor: CurrentUser,
    action: str,
    details: str,
    module: str,
    limit: int = AUDIT_LOG_LIMIT,
) -> Snapshot:
    """Return `snapshot` with one entry prepended and the log cut to `limit`.

    Never raises: on failure the snapshot is returned without the entry.
    """
    try:
        entry = build_entry(actor, action, details, module)
        logs = [entry, *snapshot.audit_logs][:limit]
        return snapshot.model_copy(update={"audit_logs": logs})
    except Exception:
        logger.exception("Failed to append audit entry %s (%s)", action, module)
        return snapshot
