"""Audit logger: PII-free trail of provider attempts, tool calls and gate blocks.

A student's messages, rank and profile never reach the ``audit_log`` table:

* ``tool_input_hash``: SHA-256 of the canonical JSON tool arguments.
* ``llm_provider`` / ``model``: which responder handled the request.
* ``metadata``: only non-identifying extras (error class, chunk counts).
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from compass.core.storage.database import CollegeDatabase

logger = logging.getLogger(__name__)

# Audit actions
PROVIDER_ATTEMPT = "provider_attempt"
TOOL_INVOCATION = "tool_invocation"
GATE_BLOCK = "gate_block"
RESPONDER = "responder"

_COLUMNS = (
    "id",
    "timestamp",
    "action",
    "tool_name",
    "tool_input_hash",
    "llm_provider",
    "model",
    "duration_ms",
    "status",
    "error_type",
    "metadata_json",
)
_INSERT_SQL = (
    f"INSERT INTO audit_log ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in _COLUMNS)})"
)


def _hash_input(data: Any) -> str:
    """SHA-256 hash of canonical JSON, or empty string when not serializable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""
    return hashlib.sha256(canonical.encode()).hexdigest()


def _where(filters: dict[str, Any]) -> tuple[str, list[Any]]:
    """Build a WHERE clause from ``column -> value`` pairs, skipping empty values.

    ``timestamp`` is compared as a lower bound, every other column for equality.
    """
    clauses = []
    params = []
    for column, value in filters.items():
        if not value:
            continue
        clauses.append(f"{column} >= ?" if column == "timestamp" else f"{column} = ?")
        params.append(value)
    return (" WHERE " + " AND ".join(clauses)) if clauses else "", params


@dataclass
class AuditEvent:
    """A single audit log entry."""

    action: str                          # see the action constants above
    tool_name: str = ""
    tool_input_hash: str = ""
    llm_provider: str | None = None      # 'groq' | 'anthropic' | 'openai' | 'rule-based'
    model: str | None = None
    duration_ms: float | None = None
    status: str = "success"              # 'success' | 'failure' | 'blocked'
    error_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_row(self, event_id: str, timestamp: str) -> tuple:
        """Column values in ``_COLUMNS`` order."""
        metadata_json = (
            json.dumps(self.metadata, separators=(",", ":"), default=str)
            if self.metadata else None
        )
        return (
            event_id,
            timestamp,
            self.action,
            self.tool_name or None,
            self.tool_input_hash or None,
            self.llm_provider,
            self.model,
            self.duration_ms,
            self.status,
            self.error_type,
            metadata_json,
        )


class AuditLogger:
    """Records audit events to the ``audit_log`` SQLite table.

    Writing is best effort: a failed insert is logged and the request
    carries on.

    Usage::

        audit = AuditLogger(college_db)
        audit.log_tool_call(
            tool_name="predict_admission",
            tool_input={"exam": "TS EAMCET", "rank": 5000},
            llm_provider="groq",
        )
    """

    def __init__(self, database: CollegeDatabase) -> None:
        self._db = database

    def log_event(self, event: AuditEvent) -> str:
        """Insert an audit event and return its UUID (empty string on failure)."""
        event_id = str(uuid.uuid4())
        row = event.to_row(event_id, datetime.now(timezone.utc).isoformat())
        try:
            with self._db.connection as conn:
                conn.execute(_INSERT_SQL, row)
        except Exception:
            logger.exception("Failed to write %s audit event", event.action)
            return ""
        return event_id

    def log_provider_attempt(
        self,
        provider: str,
        model: str,
        *,
        status: str = "success",
        error_type: str | None = None,
        status_code: int | None = None,
        duration_ms: float | None = None,
        streamed: bool = False,
    ) -> str:
        metadata: dict[str, Any] = {"streamed": streamed}
        if status_code is not None:
            metadata["status_code"] = status_code
        return self.log_event(AuditEvent(
            action=PROVIDER_ATTEMPT,
            llm_provider=provider,
            model=model,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata,
        ))

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        llm_provider: str | None = None,
        duration_ms: float | None = None,
        status: str = "success",
        error_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Log a grounding tool invocation.

        Args:
            tool_name: Registered tool name.
            tool_input: Tool arguments, hashed and never stored raw.
            llm_provider: Provider that requested the call.
            duration_ms: Execution time in milliseconds.
            status: 'success' or 'failure'.
            error_type: Short failure classification.
            metadata: Additional non-identifying metadata.
        """
        return self.log_event(AuditEvent(
            action=TOOL_INVOCATION,
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            llm_provider=llm_provider,
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            metadata=metadata or {},
        ))

    def log_gate_block(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        llm_provider: str | None = None,
        reason: str = "missing_exam",
    ) -> str:
        """Log a prediction tool call refused for lack of a resolved exam."""
        return self.log_event(AuditEvent(
            action=GATE_BLOCK,
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            llm_provider=llm_provider,
            status="blocked",
            error_type=reason,
        ))

    def log_responder(
        self,
        model_used: str,
        *,
        streamed: bool = False,
        failed_providers: list[str] | None = None,
        duration_ms: float | None = None,
    ) -> str:
        """Log which responder produced the final reply for a request."""
        provider = model_used.split(":", 1)[0]
        return self.log_event(AuditEvent(
            action=RESPONDER,
            llm_provider=provider,
            model=model_used,
            duration_ms=duration_ms,
            metadata={"streamed": streamed, "failed_providers": failed_providers or []},
        ))

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Audit events matching the given filters, newest first."""
        where, params = _where({"action": action, "tool_name": tool_name, "timestamp": since})
        rows = self._db.connection.execute(
            f"SELECT * FROM audit_log{where} ORDER BY timestamp DESC LIMIT ?",
            [*params, limit],
        ).fetchall()
        return [dict(row) for row in rows]

    def count_events(self, *, action: str | None = None) -> int:
        where, params = _where({"action": action})
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM audit_log{where}", params
        ).fetchone()
        return row[0]
