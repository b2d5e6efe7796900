"""
Configuration
Reads PayDesk settings from the environment (and a local .env file if present).

Environment:
  PAYDESK_API_BASE_URL             (default: http://localhost:8080/server_war_exploded/api)
  PAYDESK_REQUEST_TIMEOUT          (default: 10 seconds)
  PAYDESK_PIN_MAX_ATTEMPTS         (default: 3)
  PAYDESK_PIN_ATTEMPT_SCOPE        (default: dialog)   -- dialog | session
  PAYDESK_PIN_VERIFY_PATH          (default: /payment-methods/verify-pin)
  PAYDESK_SESSION_TIMEOUT_MINUTES  (default: 30)
  LOG_LEVEL                        (default: INFO)
  PAYDESK_LOG_DIR                  (default: ./logs)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)

DEFAULT_API_BASE_URL = "http://localhost:8080/server_war_exploded/api"
DEFAULT_PIN_VERIFY_PATH = "/payment-methods/verify-pin"

PIN_SCOPE_DIALOG = "dialog"
PIN_SCOPE_SESSION = "session"
PIN_SCOPES = (PIN_SCOPE_DIALOG, PIN_SCOPE_SESSION)


@dataclass(frozen=True)
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 10.0
    pin_max_attempts: int = 3
    pin_attempt_scope: str = PIN_SCOPE_DIALOG
    pin_verify_path: str = DEFAULT_PIN_VERIFY_PATH
    session_timeout_minutes: int = 30
    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self) -> None:
        if self.pin_attempt_scope not in PIN_SCOPES:
            raise ValueError(
                f"pin_attempt_scope must be one of {PIN_SCOPES}, got {self.pin_attempt_scope!r}"
            )
        if self.pin_max_attempts < 1:
            raise ValueError("pin_max_attempts must be at least 1")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables, falling back to defaults.
        """
        return cls(
            api_base_url=os.getenv("PAYDESK_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
            request_timeout=float(os.getenv("PAYDESK_REQUEST_TIMEOUT", "10")),
            pin_max_attempts=int(os.getenv("PAYDESK_PIN_MAX_ATTEMPTS", "3")),
            pin_attempt_scope=os.getenv("PAYDESK_PIN_ATTEMPT_SCOPE", PIN_SCOPE_DIALOG).strip().lower(),
            pin_verify_path=os.getenv("PAYDESK_PIN_VERIFY_PATH", DEFAULT_PIN_VERIFY_PATH),
            session_timeout_minutes=int(os.getenv("PAYDESK_SESSION_TIMEOUT_MINUTES", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv("PAYDESK_LOG_DIR", "logs"),
        )
