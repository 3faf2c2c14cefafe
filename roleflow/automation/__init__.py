"""Automation backend integration."""

from __future__ import annotations

from typing import Optional

from ..config import RoleflowConfig, load_config
from .client import AutomationClient
from .errors import ErrorInfo, parse_error_body
from .summary import parse_success_body, summarize_tasks


def get_automation_client(config: Optional[RoleflowConfig] = None) -> AutomationClient:
    """Factory function to get a client for the configured endpoint."""
    config = config or load_config()
    return AutomationClient(config.automation)


__all__ = [
    "AutomationClient",
    "ErrorInfo",
    "get_automation_client",
    "parse_error_body",
    "parse_success_body",
    "summarize_tasks",
]
