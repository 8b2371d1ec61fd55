"""
audit_log.py

Audit trail for account, credit and generation activity.

Every line of the audit file is one JSON object:

    {
        "timestamp": "2025-11-19T15:30:00.000000+00:00",
        "event": "credits.deducted",
        "salon_id": "3f2a...",
        "user_id": "9c1b...",
        "request_id": "1a2b3c4d",
        "ip_address": "192.168.1.1",
        "user_agent": "Mozilla/5.0...",
        "details": {"amount": 1, "balance_after": 49}
    }

Rules:
- Append-only; entries are never rewritten
- Only whitelisted detail keys are stored. Prompts, passwords and image
  payloads are replaced by their type name
- If the log directory is not writable, events still go to stdout

Usage:
    from audit_log import audit, AuditEvent

    audit.log_request_event(
        AuditEvent.CREDITS_DEDUCTED,
        salon_id=salon.id,
        user_id=user.id,
        details={'amount': 2, 'balance_after': 48},
    )

Version History:
    2025-11-04: Initial implementation
    2025-11-19: Added generation and cross-tenant events
"""

import os
import json
import uuid
import fcntl
import threading
from enum import Enum
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any


class AuditEvent(Enum):
    """Auditable events, grouped by prefix (auth, generation, credits, admin, image, security)."""

    # Accounts
    AUTH_SIGNUP = "auth.signup"
    AUTH_LOGIN = "auth.login"
    AUTH_LOGIN_FAILED = "auth.login_failed"
    AUTH_LOGOUT = "auth.logout"
    AUTH_PASSWORD_CHANGED = "auth.password_changed"

    # Generation workflow
    GENERATION_REQUESTED = "generation.requested"
    GENERATION_COMPLETED = "generation.completed"
    GENERATION_FAILED = "generation.failed"

    # Balance changes
    CREDITS_DEDUCTED = "credits.deducted"
    CREDITS_REFUNDED = "credits.refunded"
    CREDITS_GRANTED = "credits.granted"
    CREDITS_ADJUSTED = "credits.adjusted"
    CREDITS_INSUFFICIENT = "credits.insufficient"

    # Back-office
    ADMIN_SALON_CREATED = "admin.salon_created"
    ADMIN_SALON_UPDATED = "admin.salon_updated"
    ADMIN_SALON_DELETED = "admin.salon_deleted"
    ADMIN_ACCESS_DENIED = "admin.access_denied"

    # Client photos
    IMAGE_UPLOADED = "image.uploaded"
    IMAGE_DELETED = "image.deleted"

    SECURITY_CROSS_TENANT_ACCESS = "security.cross_tenant_access"


# Detail keys that are stored as-is
SAFE_KEYS = frozenset({
    'amount', 'balance_after', 'required', 'available', 'reason',
    'generation_id', 'generation_type', 'variations', 'credit_cost',
    'processing_time_ms', 'provider', 'image_id', 'hair_style_id',
    'size_bytes', 'content_type', 'role', 'email', 'slug', 'fields',
    'error_type', 'error_message', 'refunded', 'resource',
    'request_path', 'request_method',
})

MAX_VALUE_LENGTH = 500
MAX_USER_AGENT_LENGTH = 200


def sanitize_details(details: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Whitelist filter. Unknown keys keep only the value's type name."""
    sanitized = {}

    for key, value in (details or {}).items():
        if key not in SAFE_KEYS:
            sanitized[f'_skipped_{key}'] = type(value).__name__
        elif isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            sanitized[key] = value[:MAX_VALUE_LENGTH] + '...'
        else:
            sanitized[key] = value

    return sanitized


def request_context() -> Dict[str, str]:
    """Client address, user agent and route of the current Flask request."""
    from flask import request, has_request_context

    if not has_request_context():
        return {}

    forwarded = request.headers.get('X-Forwarded-For', '')
    ip = forwarded.split(',')[0].strip() if forwarded else request.remote_addr

    return {
        'ip_address': ip or 'unknown',
        'user_agent': request.headers.get('User-Agent', 'unknown'),
        'request_path': request.path,
        'request_method': request.method,
    }


class AuditLogger:
    """
    Appends audit entries to <AUDIT_LOG_DIR>/audit.log.

    Writes are serialized with a thread lock and an flock, so several
    gunicorn workers can share one file.
    """

    def __init__(self, log_path: Optional[Path] = None):
        if log_path is None:
            log_path = Path(os.environ.get('AUDIT_LOG_DIR', '/data/audit')) / 'audit.log'

        self._log_path = Path(log_path)
        self._lock = threading.Lock()
        self._enabled = self._prepare()

    @property
    def log_path(self) -> Path:
        return self._log_path

    def _prepare(self) -> bool:
        try:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            self._log_path.touch(exist_ok=True)
        except OSError as e:
            print(f"[AuditLog] WARNING: {self._log_path} not writable ({e}), stdout only")
            return False

        print(f"[AuditLog] Writing to {self._log_path}")
        return True

    def log_event(
        self,
        event_type: AuditEvent,
        salon_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Record one event.

        Args:
            event_type: AuditEvent member
            salon_id: Tenant the event concerns
            user_id: Acting user
            details: Event metadata, filtered through SAFE_KEYS
            request_id: Correlation id (random when omitted)
            ip_address: Client address
            user_agent: Client user agent
        """
        entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'event': event_type.value,
            'salon_id': salon_id,
            'user_id': user_id,
            'request_id': request_id or uuid.uuid4().hex[:8],
            'details': sanitize_details(details),
        }
        if ip_address:
            entry['ip_address'] = ip_address
        if user_agent:
            entry['user_agent'] = user_agent[:MAX_USER_AGENT_LENGTH]

        print(f"[AUDIT] {entry['event']} salon={salon_id or 'none'}")

        if self._enabled:
            self._append(json.dumps(entry, default=str))

    def log_request_event(
        self,
        event_type: AuditEvent,
        salon_id: Optional[str] = None,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """log_event() plus client and route info from the current request."""
        context = request_context()
        route = {k: v for k, v in context.items() if k.startswith('request_')}

        self.log_event(
            event_type,
            salon_id=salon_id,
            user_id=user_id,
            details={**(details or {}), **route},
            ip_address=context.get('ip_address'),
            user_agent=context.get('user_agent'),
        )

    def _append(self, line: str) -> None:
        with self._lock:
            try:
                with open(self._log_path, 'a', encoding='utf-8') as f:
                    fcntl.flock(f, fcntl.LOCK_EX)
                    try:
                        f.write(line + '\n')
                        f.flush()
                        os.fsync(f.fileno())
                    finally:
                        fcntl.flock(f, fcntl.LOCK_UN)
            except OSError as e:
                print(f"[AuditLog] ERROR writing entry: {e}")

    def get_recent_events(
        self,
        count: int = 100,
        event_type: Optional[AuditEvent] = None,
        salon_id: Optional[str] = None,
    ) -> list:
        """Newest-first entries, optionally filtered by event type and salon."""
        if not self._enabled:
            return []

        try:
            with open(self._log_path, 'r', encoding='utf-8') as f:
                lines = f.read().splitlines()
        except OSError as e:
            print(f"[AuditLog] ERROR reading log: {e}")
            return []

        events = []
        for line in reversed(lines):
            if len(events) >= count:
                break
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if event_type is not None and entry.get('event') != event_type.value:
                continue
            if salon_id is not None and entry.get('salon_id') != salon_id:
                continue
            events.append(entry)

        return events


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


audit = get_audit_logger()
