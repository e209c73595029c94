"""Structured audit logging."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional

from .policy import LoggingSettings


class AuditLogger:
    """Writes access decisions as JSON lines."""

    def __init__(self, settings: Optional[LoggingSettings] = None, policy_version: int = 1) -> None:
        settings = settings or LoggingSettings()
        self.logger = logging.getLogger("ipacl.audit")
        if not self.logger.handlers:
            handler: logging.Handler
            if settings.output == "file":
                handler = RotatingFileHandler(
                    settings.file_path,
                    maxBytes=settings.rotate_bytes,
                    backupCount=3,
                )
            else:
                handler = logging.StreamHandler()
            formatter = logging.Formatter("%(message)s")
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)
        self.logger.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
        self.policy_version = policy_version

    def log(
        self,
        *,
        path: str,
        address: Optional[str],
        decision: str,
        status: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "path": path,
            "address": address,
            "decision": decision,
            "status": status,
            "reason": reason,
            "policy_version": self.policy_version,
        }
        self.logger.info(json.dumps(payload))
