"""
Application configuration.

Configuration is a JSON document deep-merged over ``DEFAULT_CONFIG`` and
validated with pydantic. String values may reference environment variables
as ``${NAME}``; unknown variables expand to an empty string.
"""

from typing import Dict, Any, List, Literal, Optional
import copy
import json
import os
import re

import pydantic
from pydantic import BaseModel, Field

from toolgate.errors import ConfigError

DEFAULT_CONFIG_PATH = "./toolgate.config.json"

ProviderName = Literal["openai", "anthropic", "gemini", "kimi", "ollama"]
ToolName = Literal["file", "shell", "browser", "spawn"]


class ProviderSettings(BaseModel):
    api_key: str = Field(min_length=1)
    api_base: Optional[str] = None
    model: str = Field(min_length=1)
    fallback_models: List[str] = Field(default_factory=list, description="Tried in order when the model is not found")


class OllamaSettings(BaseModel):
    api_base: str = "http://localhost:11434"
    model: str = "llama3.1"


class ProvidersSettings(BaseModel):
    openai: Optional[ProviderSettings] = None
    anthropic: Optional[ProviderSettings] = None
    gemini: Optional[ProviderSettings] = None
    kimi: Optional[ProviderSettings] = None
    ollama: Optional[OllamaSettings] = None


class AgentSettings(BaseModel):
    provider: ProviderName = "openai"
    model: str = Field(min_length=1)
    max_iterations: int = Field(default=10, gt=0, le=30)
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    system_prompt: Optional[str] = None


class ToolSettings(BaseModel):
    restrict_to_workspace: bool = True
    workspace_root: str = "./workspace"
    blocked_commands: List[str] = Field(
        default_factory=lambda: [r"(^|\s)sudo(\s|$)", r"rm\s+-rf\s+/", "shutdown", "reboot"]
    )
    blocked_paths: List[str] = Field(default_factory=lambda: [".git", ".env"])
    enabled_tools: List[ToolName] = Field(default_factory=lambda: ["file", "shell", "browser", "spawn"])
    command_timeout_ms: int = Field(default=30000, gt=0)


class MemorySettings(BaseModel):
    enabled: bool = True
    path: str = "./memory.json"
    max_entries: int = Field(default=1000, gt=0)
    retrieval_limit: int = Field(default=10, gt=0)


class DaemonSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3000, gt=0, lt=65536)


class AuditSettings(BaseModel):
    enabled: bool = True
    path: str = "./audit.log"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console"] = "json"


class AppConfig(BaseModel):
    providers: ProvidersSettings = Field(default_factory=ProvidersSettings)
    agent: AgentSettings
    tools: ToolSettings = Field(default_factory=ToolSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    daemon: DaemonSettings = Field(default_factory=DaemonSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


DEFAULT_CONFIG: Dict[str, Any] = {
    "providers": {
        "ollama": {"api_base": "http://localhost:11434", "model": "llama3.1"},
    },
    "agent": {
        "provider": "ollama",
        "model": "llama3.1",
        "max_iterations": 10,
        "temperature": 0.7,
        "system_prompt": "You are a helpful AI assistant with access to tools.",
    },
}

_ENV_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")


def replace_env_vars(text: str) -> str:
    return _ENV_PATTERN.sub(lambda match: os.environ.get(match.group(1), ""), text)


def deep_merge(base: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``incoming`` over ``base``; lists and scalars are replaced"""

    output = copy.deepcopy(base)
    for key, value in incoming.items():
        current = output.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            output[key] = deep_merge(current, value)
        else:
            output[key] = copy.deepcopy(value)
    return output


def _validate(data: Dict[str, Any]) -> AppConfig:
    try:
        return AppConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigError("Invalid configuration", {"issues": e.errors(include_url=False)}) from e


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load, merge and validate the configuration file; a missing file yields the defaults"""

    absolute_path = os.path.abspath(config_path)
    loaded: Dict[str, Any] = {}

    try:
        with open(absolute_path, "r", encoding="utf-8") as handle:
            loaded = json.loads(replace_env_vars(handle.read()))
    except FileNotFoundError:
        pass
    except (OSError, ValueError) as e:
        raise ConfigError(f"Failed to read config file at {absolute_path}", {"cause": str(e)}) from e

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file at {absolute_path} must contain a JSON object")

    return _validate(deep_merge(DEFAULT_CONFIG, loaded))


def merge_config(base: AppConfig, patch: Dict[str, Any]) -> AppConfig:
    return _validate(deep_merge(base.model_dump(), patch))
