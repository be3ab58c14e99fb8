"""
Schema definitions for ActionBox.

This module defines all the Pydantic models used throughout ActionBox:
- ActionBox and its sections: the behavioral contract for one skill
- Violation: one detected breach of a contract
- CapabilityClassification: the cached verdict of the capability classifier
- EnforcerConfig/ClassifierConfig: runtime configuration

Design Decisions:
    - Contract models are immutable (frozen=True) and reject unknown fields
    - Contracts are stored on disk in camelCase YAML; Python code uses
      snake_case. Both spellings are accepted when validating.
    - Violations are created fresh per evaluation and never mutated
"""

import os
import uuid
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from actionbox.errors import ConfigError


# =============================================================================
# Enums
# =============================================================================


class Severity(str, Enum):
    """How urgent a violation is. Callers decide what each level means."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ViolationType(str, Enum):
    """Closed set of violation kinds the engine can report."""

    DENIED_TOOL = "denied_tool"
    UNLISTED_TOOL = "unlisted_tool"
    DENIED_CAPABILITY = "denied_capability"
    UNLISTED_CAPABILITY = "unlisted_capability"
    FILESYSTEM_READ_VIOLATION = "filesystem_read_violation"
    FILESYSTEM_WRITE_VIOLATION = "filesystem_write_violation"
    FILESYSTEM_DENIED = "filesystem_denied"
    NETWORK_VIOLATION = "network_violation"
    BEHAVIOR_VIOLATION = "behavior_violation"
    TOOL_CALL_LIMIT_EXCEEDED = "tool_call_limit_exceeded"


class FileOperation(str, Enum):
    """Filesystem operation inferred from a tool name."""

    READ = "read"
    WRITE = "write"


class EnforcementMode(str, Enum):
    """
    What the host should do with violations.

    MONITOR only alerts; ENFORCE additionally blocks the tool call.
    """

    MONITOR = "monitor"
    ENFORCE = "enforce"


# =============================================================================
# Contract Models
# =============================================================================


class _ContractModel(BaseModel):
    """Shared config for contract sections (camelCase on disk)."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AllowedTool(_ContractModel):
    """
    A tool the skill may invoke.

    Attributes:
        name: Exact tool name as reported by the host
        reason: Why the skill needs it
        constraints: Optional free-form argument constraints (informational)
    """

    name: str = Field(..., min_length=1, description="Tool name")
    reason: str = Field(default="", description="Why this tool is needed")
    constraints: dict[str, Any] | None = Field(
        default=None,
        description="Optional constraints on arguments",
    )


class DeniedTool(_ContractModel):
    """A tool the skill must never invoke."""

    name: str = Field(..., min_length=1, description="Tool name")
    reason: str = Field(default="", description="Why this tool must not be used")


class FilesystemRules(_ContractModel):
    """
    Filesystem glob rules.

    Attributes:
        readable: Glob patterns for allowed reads (empty = unrestricted)
        writable: Glob patterns for allowed writes (empty = unrestricted)
        denied: Glob patterns that must never be touched (takes precedence)
    """

    readable: list[str] = Field(default_factory=list)
    writable: list[str] = Field(default_factory=list)
    denied: list[str] = Field(default_factory=list)


class NetworkRules(_ContractModel):
    """
    Outbound network host rules.

    Attributes:
        allowed_hosts: Host patterns that may be contacted (empty = unrestricted)
        denied_hosts: Host patterns that must never be contacted (takes precedence)
    """

    allowed_hosts: list[str] = Field(default_factory=list)
    denied_hosts: list[str] = Field(default_factory=list)


class BehaviorExpectations(_ContractModel):
    """Plain-language guidance plus the optional tool call budget."""

    summary: str = Field(default="", description="What the skill should do")
    never_do: list[str] = Field(default_factory=list)
    always_do: list[str] = Field(default_factory=list)
    principles: list[str] = Field(default_factory=list)
    max_tool_calls: int | None = Field(
        default=None,
        description="Maximum expected tool calls per invocation",
        gt=0,
    )


class DriftInfo(_ContractModel):
    """Provenance of a contract, used for drift detection and review."""

    skill_hash: str = Field(default="", description="SHA-256 of SKILL.md at generation")
    generated_at: str = Field(default="", description="ISO timestamp of generation")
    generator_model: str = Field(default="", description="Model used for generation")
    reviewed: bool = Field(default=False)
    reviewed_by: str | None = Field(default=None)
    reviewed_at: str | None = Field(default=None)


class ActionBox(_ContractModel):
    """
    A behavioral contract ("box") for one skill.

    Contracts are created by an external generator, loaded from ACTIONBOX.md
    and never partially mutated: a reload replaces the whole contract.
    """

    version: Literal["1.0"] = "1.0"
    skill_id: str = Field(..., min_length=1)
    skill_name: str = Field(default="")
    allowed_tools: list[AllowedTool] = Field(default_factory=list)
    denied_tools: list[DeniedTool] = Field(default_factory=list)
    allowed_capabilities: list[str] = Field(default_factory=list)
    denied_capabilities: list[str] = Field(default_factory=list)
    filesystem: FilesystemRules = Field(default_factory=FilesystemRules)
    network: NetworkRules = Field(default_factory=NetworkRules)
    behavior: BehaviorExpectations = Field(default_factory=BehaviorExpectations)
    drift: DriftInfo = Field(default_factory=DriftInfo)

    @model_validator(mode="after")
    def _tool_names_unique(self) -> "ActionBox":
        for section, tools in (
            ("allowedTools", self.allowed_tools),
            ("deniedTools", self.denied_tools),
        ):
            seen: set[str] = set()
            for tool in tools:
                if tool.name in seen:
                    msg = f"Duplicate tool name in {section}: {tool.name}"
                    raise ValueError(msg)
                seen.add(tool.name)
        return self

    def to_yaml_dict(self) -> dict[str, Any]:
        """Dump in the on-disk camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Runtime Models
# =============================================================================


class CapabilityClassification(BaseModel):
    """
    Verdict of the capability classifier for one tool name.

    Attributes:
        allowed: Whether the tool fits an allowed capability
        reason: Short explanation from the classifier
        matched_capability: The capability that matched, if any. When
            allowed is False this is the denied capability that matched.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool
    reason: str = ""
    matched_capability: str | None = None


class ToolCall(BaseModel):
    """A tool invocation as reported by the host agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tool_name: str = Field(..., min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class Violation(BaseModel):
    """
    One detected rule breach.

    Attributes:
        id: Random identifier for this violation
        type: Kind of violation
        severity: How urgent it is
        skill_id: Attributed skill, "unknown", or a comma-joined list
        tool_name: Tool call that caused it ("*" for per-run checks)
        message: Human-readable description
        rule: The specific rule that was broken
        timestamp: When it was detected (UTC)
        details: Optional structured context (offending path, host, ...)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: ViolationType
    severity: Severity
    skill_id: str
    tool_name: str
    message: str
    rule: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    details: dict[str, Any] | None = None


class DriftStatus(BaseModel):
    """Result of comparing a skill's SKILL.md against its contract."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    skill_id: str
    has_drift: bool
    current_hash: str
    expected_hash: str


# =============================================================================
# Configuration Models
# =============================================================================


class ClassifierConfig(BaseModel):
    """
    Settings for the Ollama-backed capability classifier.

    Attributes:
        base_url: Ollama server URL
        model: Model used to classify tool calls
        timeout_seconds: Per-request timeout
        max_retries: Retries for connection/timeout failures
        retry_delay_seconds: Sleep between retries
        temperature: Sampling temperature (0 for repeatable verdicts)
        max_tokens: Response length cap
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    base_url: str = "http://localhost:11434"
    model: str = "qwen2.5:0.5b"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    temperature: float = Field(default=0.0, ge=0)
    max_tokens: int = Field(default=256, gt=0)


class EnforcerConfig(BaseModel):
    """
    Top-level ActionBox configuration.

    Attributes:
        mode: monitor (alert only) or enforce (block violations)
        skills_dir: Directory containing skill directories
        auto_generate: Whether hosts should generate boxes for new skills
        generator_model: Model used by the external contract generator
        drift_check_interval_seconds: Background drift check period
        recent_violations_limit: Size of the in-memory violation log
        classifier: Capability classifier settings (None disables it)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    mode: EnforcementMode = EnforcementMode.MONITOR
    skills_dir: str = "skills"
    auto_generate: bool = False
    generator_model: str = "claude-sonnet-4-5-20250929"
    drift_check_interval_seconds: int = Field(default=300, gt=0)
    recent_violations_limit: int = Field(default=20, gt=0)
    classifier: ClassifierConfig | None = None

    def resolve_skills_dir(self, workspace_dir: Path | str = ".") -> Path:
        """Resolve skills_dir relative to a workspace directory."""
        return (Path(workspace_dir) / self.skills_dir).resolve()


# =============================================================================
# YAML Loading Helpers
# =============================================================================

ENV_MODE = "ACTIONBOX_MODE"
ENV_SKILLS_DIR = "ACTIONBOX_SKILLS_DIR"


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay ACTIONBOX_* environment variables onto raw config data."""
    data = dict(data)
    mode = os.environ.get(ENV_MODE)
    if mode:
        valid = [m.value for m in EnforcementMode]
        if mode not in valid:
            raise ConfigError(
                key=ENV_MODE,
                message=f"Invalid mode: {mode}",
                suggestion=f"Use one of: {', '.join(valid)}",
            )
        data.pop("mode", None)
        data["mode"] = mode
    skills_dir = os.environ.get(ENV_SKILLS_DIR)
    if skills_dir:
        data.pop("skillsDir", None)
        data["skills_dir"] = skills_dir
    return data


def load_config_from_string(content: str, use_env: bool = True) -> EnforcerConfig:
    """
    Load an EnforcerConfig from a YAML string.

    Raises:
        ConfigError: If the YAML is not a mapping or fails validation
    """
    data = yaml.safe_load(content) or {}
    if not isinstance(data, dict):
        raise ConfigError(key="<root>", message="Config must be a mapping")
    if use_env:
        data = _apply_env_overrides(data)
    try:
        return EnforcerConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise ConfigError(key=key, message=f"Invalid configuration: {first['msg']}") from e


def load_config(path: Path | str | None = None, use_env: bool = True) -> EnforcerConfig:
    """
    Load an EnforcerConfig from a YAML file.

    A missing path (None) yields the defaults, still subject to environment
    overrides.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the YAML doesn't match the schema
    """
    if path is None:
        return load_config_from_string("", use_env=use_env)
    path = Path(path)
    with path.open() as f:
        content = f.read()
    return load_config_from_string(content, use_env=use_env)
