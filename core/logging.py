from __future__ import annotations

import copy
import json
import sys
import time
from typing import Any, Dict, Optional

from loguru import logger


REDACTED = "[REDACTED]"
MAX_DEPTH = 10

# Keys whose values never reach a log sink
SENSITIVE_FIELDS = frozenset(
	{
		"password",
		"api_key",
		"apiKey",
		"key",  # full API key, present only in the creation response
		"secret",
		"token",
		"accessToken",
		"refreshToken",
		"privateKey",
		"clientSecret",
		"config",  # connection config is opaque
	}
)


def redact(obj: Any, depth: int = 0) -> Any:
	"""
	Return a copy of ``obj`` with every sensitive key's value replaced.

	Dicts and lists are walked up to ``MAX_DEPTH`` levels; anything nested
	deeper is collapsed to a marker rather than inspected.
	"""
	if depth > MAX_DEPTH:
		return "[MAX_DEPTH_EXCEEDED]"
	if isinstance(obj, dict):
		return {
			key: REDACTED if key in SENSITIVE_FIELDS else redact(value, depth + 1)
			for key, value in obj.items()
		}
	if isinstance(obj, list):
		return [redact(item, depth + 1) for item in obj]
	return obj


def mask_secret(value: str, visible: int = 8) -> str:
	"""Keep only the leading characters of a secret for display."""
	if len(value) <= visible:
		return REDACTED
	return f"{value[:visible]}..."


def _is_audit(record: Dict[str, Any]) -> bool:
	return bool(record["extra"].get("audit"))


def configure_logging(level: str = "info", audit_log_path: Optional[str] = None) -> None:
	"""Route logs to stderr, and audit events to their own file when configured.

	stdout is reserved for the stdio transport.
	"""
	logger.remove()
	logger.add(sys.stderr, level=level.upper(), serialize=True, enqueue=True)
	if audit_log_path:
		logger.add(audit_log_path, level="INFO", serialize=True, enqueue=True, filter=_is_audit)


def audit_log(event: str, actor: str, details: Dict[str, Any], status: str = "ok") -> None:
	"""
	Record a mutating operation.

	Args:
		event: Operation name, e.g. "delete_skill"
		actor: Who performed it, e.g. "mcp"
		details: Identifying data; redacted before it is written
		status: Outcome of the operation
	"""
	entry = {
		"event": event,
		"actor": actor,
		"status": status,
		"details": redact(copy.deepcopy(details)),
		"timestamp": int(time.time() * 1000),
	}
	logger.bind(audit=True, event=event).info(json.dumps(entry))
