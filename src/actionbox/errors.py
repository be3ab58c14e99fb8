"""
Exception hierarchy for ActionBox.

All ActionBox exceptions inherit from ActionBoxError, allowing callers to
catch every ActionBox-specific exception with a single except clause.

The policy engine itself never raises for detected problems: violations are
returned as values. Exceptions only come from the layers around it
(loading contracts, reading configuration, talking to a classifier).

Exception Categories:
    - ContractError: ACTIONBOX.md missing, unparseable or invalid
    - ClassifierError: Capability classifier backend unreachable
    - ConfigError: Invalid enforcer configuration
    - SkillNotFoundError: Named skill directory does not exist

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (paths, models, URLs where applicable)
    - All errors provide actionable suggestions where possible
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Contract errors: 1xxx
ERROR_CONTRACT_NOT_FOUND = 1001
ERROR_CONTRACT_PARSE = 1002
ERROR_CONTRACT_VALIDATION = 1003

# Classifier errors: 2xxx
ERROR_CLASSIFIER_CONNECTION = 2001
ERROR_CLASSIFIER_TIMEOUT = 2002
ERROR_CLASSIFIER_MODEL_NOT_FOUND = 2003

# Config errors: 3xxx
ERROR_CONFIG_INVALID = 3001

# Skill errors: 4xxx
ERROR_SKILL_NOT_FOUND = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ActionBoxError(Exception):
    """
    Base exception for all ActionBox errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Contract Errors
# =============================================================================


@dataclass
class ContractError(ActionBoxError):
    """
    Base class for contract loading errors.

    Attributes:
        path: Path of the ACTIONBOX.md file involved
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["path"] = self.path


@dataclass
class ContractNotFoundError(ContractError):
    """Raised when a skill directory has no ACTIONBOX.md."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No ACTIONBOX.md found at {self.path}"
        if self.code == 0:
            self.code = ERROR_CONTRACT_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Generate a contract for the skill before enforcing it"
        super().__post_init__()


@dataclass
class ContractParseError(ContractError):
    """Raised when the YAML block of an ACTIONBOX.md cannot be read."""

    parse_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot parse contract: {self.parse_error}"
        if self.code == 0:
            self.code = ERROR_CONTRACT_PARSE
        if not self.suggestion:
            self.suggestion = "The contract must contain a YAML block fenced by '---' lines"
        super().__post_init__()
        self.context["parse_error"] = self.parse_error


@dataclass
class ContractValidationError(ContractError):
    """Raised when a contract's YAML does not match the schema."""

    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid contract: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_CONTRACT_VALIDATION
        super().__post_init__()
        self.context["validation_error"] = self.validation_error


# =============================================================================
# Classifier Errors
# =============================================================================


@dataclass
class ClassifierError(ActionBoxError):
    """
    Base class for capability classifier errors.

    Attributes:
        classifier: Backend name (e.g., "ollama")
        model: Model identifier
    """

    classifier: str = ""
    model: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "classifier": self.classifier,
            "model": self.model,
        })


@dataclass
class ClassifierConnectionError(ClassifierError):
    """Raised when the classifier backend cannot be reached."""

    url: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot connect to {self.classifier} at {self.url}"
            if self.underlying_error:
                self.message += f": {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CLASSIFIER_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the classifier backend is running (ollama serve)"
        super().__post_init__()
        self.context.update({
            "url": self.url,
            "underlying_error": self.underlying_error,
        })


@dataclass
class ClassifierTimeoutError(ClassifierError):
    """Raised when a classification request times out."""

    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Classifier {self.classifier} timed out after {self.timeout_seconds}s"
            )
        if self.code == 0:
            self.code = ERROR_CLASSIFIER_TIMEOUT
        if not self.suggestion:
            self.suggestion = "Increase classifier.timeout_seconds or use a smaller model"
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class ClassifierModelNotFoundError(ClassifierError):
    """Raised when the configured model is not available on the backend."""

    available_models: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Model not found: {self.model}"
        if self.code == 0:
            self.code = ERROR_CLASSIFIER_MODEL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = f"Pull the model first: ollama pull {self.model}"
        super().__post_init__()
        self.context["available_models"] = self.available_models


# =============================================================================
# Config / Skill Errors
# =============================================================================


@dataclass
class ConfigError(ActionBoxError):
    """Raised when the enforcer configuration is invalid."""

    key: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration value for {self.key}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["key"] = self.key


@dataclass
class SkillNotFoundError(ActionBoxError):
    """Raised when a named skill directory does not exist."""

    skill: str = ""
    skills_dir: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Skill not found: {self.skill}"
        if self.code == 0:
            self.code = ERROR_SKILL_NOT_FOUND
        if not self.suggestion:
            self.suggestion = f"Check that {self.skills_dir}/{self.skill} contains a SKILL.md"
        self.context.update({
            "skill": self.skill,
            "skills_dir": self.skills_dir,
        })
