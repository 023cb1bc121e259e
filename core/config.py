from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError


DEFAULT_BASE_URL = "http://localhost:3001/api/v1"
DEFAULT_TIMEOUT_MS = 30_000
TRANSPORTS = ("stdio", "http")

_url_adapter: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


class ConfigurationError(RuntimeError):
	"""Raised when required startup configuration is missing or invalid."""


def _parse_int(name: str, raw: str) -> int:
	try:
		return int(raw)
	except ValueError:
		raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
	"""Environment-driven configuration for the service."""

	# alfred
	api_key: str
	base_url: str = DEFAULT_BASE_URL
	timeout_ms: int = DEFAULT_TIMEOUT_MS

	# ops
	log_level: str = "info"
	audit_log_path: Optional[str] = None
	transport: str = "stdio"
	host: str = "127.0.0.1"
	port: int = 8000

	def __post_init__(self) -> None:
		if not self.api_key:
			raise ConfigurationError("ALFRED_API_KEY must be set in environment")
		try:
			_url_adapter.validate_python(self.base_url)
		except ValidationError:
			raise ConfigurationError(f"ALFRED_BASE_URL is not a valid URL: {self.base_url!r}") from None
		if self.timeout_ms <= 0:
			raise ConfigurationError("ALFRED_TIMEOUT must be a positive number of milliseconds")
		if self.transport not in TRANSPORTS:
			raise ConfigurationError(f"MCP_TRANSPORT must be one of {', '.join(TRANSPORTS)}")
		if not 0 < self.port < 65536:
			raise ConfigurationError("MCP_PORT must be between 1 and 65535")

	@property
	def timeout_seconds(self) -> float:
		return self.timeout_ms / 1000

	@staticmethod
	def load_from_env() -> "Settings":
		api_key = os.getenv("ALFRED_API_KEY", "")
		if not api_key:
			raise ConfigurationError("ALFRED_API_KEY must be set in environment")

		base_url = (os.getenv("ALFRED_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
		timeout_ms = _parse_int("ALFRED_TIMEOUT", os.getenv("ALFRED_TIMEOUT", str(DEFAULT_TIMEOUT_MS)))
		log_level = os.getenv("LOG_LEVEL", "info")
		audit_log_path = os.getenv("AUDIT_LOG_PATH")
		transport = os.getenv("MCP_TRANSPORT", "stdio").lower()
		host = os.getenv("MCP_HOST", "127.0.0.1")
		port = _parse_int("MCP_PORT", os.getenv("MCP_PORT", "8000"))

		return Settings(
			api_key=api_key,
			base_url=base_url,
			timeout_ms=timeout_ms,
			log_level=log_level,
			audit_log_path=audit_log_path,
			transport=transport,
			host=host,
			port=port,
		)
