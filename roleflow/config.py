from __future__ import annotations

import os
from typing import Optional

import yaml
from pydantic import BaseModel


class AutomationSettings(BaseModel):
    """Settings for the automation trigger endpoint."""

    url: str = ""
    source: str = "Role-Chat-Interface"
    user_agent: str = "Role-Chat-Interface/1.0"
    timeout: float = 15.0
    health_timeout: float = 5.0
    max_retries: int = 2
    test_max_retries: int = 1
    retry_delay: float = 2.0
    max_retry_after: float = 10.0
    default_retry_after: int = 60
    max_description_length: int = 1500


class WorkflowSettings(BaseModel):
    """Workflow execution settings."""

    step_delay: float = 0.5


class ResponderSettings(BaseModel):
    """Settings for the conversational language model."""

    model: str = "openai:gpt-4o"
    api_key: Optional[str] = None
    history_window: int = 10
    max_tokens: int = 1000
    temperature: float = 0.7


class RoleflowConfig(BaseModel):
    """Top-level configuration model."""

    automation: AutomationSettings = AutomationSettings()
    workflow: WorkflowSettings = WorkflowSettings()
    responder: ResponderSettings = ResponderSettings()
    database_url: Optional[str] = None
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> RoleflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to ROLEFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("ROLEFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = RoleflowConfig(**data)
    else:
        config = RoleflowConfig()

    env_url = os.getenv("ROLEFLOW_AUTOMATION_URL")
    if env_url:
        config.automation.url = env_url

    env_db_url = os.getenv("ROLEFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url

    env_api_key = os.getenv("OPENAI_API_KEY")
    if env_api_key and env_api_key.strip():
        config.responder.api_key = env_api_key.strip()

    env_log_level = os.getenv("ROLEFLOW_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    return config
