"""Append-only audit trail of admin actions."""

from __future__ import annotations

import logging
import sqlite3

from leada.data.db import AuditDB
from leada.data.models import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditAction:
    LOGIN = "login"
    LOGOUT = "logout"
    USER_VIEW = "user_view"
    USER_LIST = "user_list"
    USER_EDIT = "user_edit"
    USER_DELETE = "user_delete"
    PASSWORD_RESET = "password_reset"
    DASHBOARD_VIEW = "dashboard_view"
    COMPANY_VIEW = "company_view"
    COMPANY_EDIT = "company_edit"


class AuditLogger:
    def __init__(self, audit_db: AuditDB) -> None:
        self._db = audit_db

    def record(
        self,
        actor_id: str,
        action: str,
        target_id: str | None = None,
        details: dict | None = None,
        ip_address: str | None = None,
    ) -> AuditLogEntry | None:
        """Write an entry. Failures are logged; the caller's action goes on."""
        try:
            return self._db.add_entry(actor_id, action, target_id, details, ip_address)
        except (sqlite3.Error, TypeError, ValueError) as exc:
            logger.error("Failed to write audit entry %s by %s: %s", action, actor_id, exc)
            return None

    def list_entries(
        self,
        actor_id: str | None = None,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLogEntry], int]:
        return self._db.list_entries(actor_id, action, limit, offset)
