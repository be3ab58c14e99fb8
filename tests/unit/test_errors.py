"""Unit tests for the ActionBox error hierarchy."""

import pytest

from actionbox.errors import (
    ERROR_CLASSIFIER_CONNECTION,
    ERROR_CLASSIFIER_MODEL_NOT_FOUND,
    ERROR_CLASSIFIER_TIMEOUT,
    ERROR_CONFIG_INVALID,
    ERROR_CONTRACT_NOT_FOUND,
    ERROR_CONTRACT_PARSE,
    ERROR_CONTRACT_VALIDATION,
    ERROR_SKILL_NOT_FOUND,
    ActionBoxError,
    ClassifierConnectionError,
    ClassifierError,
    ClassifierModelNotFoundError,
    ClassifierTimeoutError,
    ConfigError,
    ContractError,
    ContractNotFoundError,
    ContractParseError,
    ContractValidationError,
    SkillNotFoundError,
)


class TestBaseError:
    """Tests for ActionBoxError."""

    def test_str_without_suggestion(self) -> None:
        assert str(ActionBoxError(message="boom", code=7)) == "[E7] boom"

    def test_str_with_suggestion(self) -> None:
        error = ActionBoxError(message="boom", code=7, suggestion="try again")
        assert str(error) == "[E7] boom\nSuggestion: try again"

    def test_to_dict(self) -> None:
        data = ActionBoxError(message="boom", code=7, context={"k": "v"}).to_dict()
        assert data == {
            "error_type": "ActionBoxError",
            "message": "boom",
            "code": 7,
            "suggestion": None,
            "context": {"k": "v"},
        }

    def test_is_exception(self) -> None:
        with pytest.raises(ActionBoxError):
            raise SkillNotFoundError(skill="x")


class TestContractErrors:
    """Tests for contract errors."""

    def test_not_found(self) -> None:
        error = ContractNotFoundError(path="/skills/a/ACTIONBOX.md")
        assert error.code == ERROR_CONTRACT_NOT_FOUND
        assert error.message == "No ACTIONBOX.md found at /skills/a/ACTIONBOX.md"
        assert error.context["path"] == "/skills/a/ACTIONBOX.md"
        assert isinstance(error, ContractError)

    def test_parse(self) -> None:
        error = ContractParseError(path="p", parse_error="bad indent")
        assert error.code == ERROR_CONTRACT_PARSE
        assert error.message == "Cannot parse contract: bad indent"
        assert error.context["parse_error"] == "bad indent"

    def test_validation(self) -> None:
        error = ContractValidationError(path="p", validation_error="skillId missing")
        assert error.code == ERROR_CONTRACT_VALIDATION
        assert "skillId missing" in error.message

    def test_explicit_message_kept(self) -> None:
        error = ContractParseError(message="custom", path="p")
        assert error.message == "custom"


class TestClassifierErrors:
    """Tests for classifier errors."""

    def test_connection(self) -> None:
        error = ClassifierConnectionError(
            classifier="ollama",
            model="m",
            url="http://localhost:11434",
            underlying_error="refused",
        )
        assert error.code == ERROR_CLASSIFIER_CONNECTION
        assert error.message == "Cannot connect to ollama at http://localhost:11434: refused"
        assert error.context["model"] == "m"
        assert isinstance(error, ClassifierError)

    def test_timeout(self) -> None:
        error = ClassifierTimeoutError(classifier="ollama", model="m", timeout_seconds=5.0)
        assert error.code == ERROR_CLASSIFIER_TIMEOUT
        assert "5.0s" in error.message

    def test_model_not_found(self) -> None:
        error = ClassifierModelNotFoundError(
            classifier="ollama", model="m", available_models=["a", "b"]
        )
        assert error.code == ERROR_CLASSIFIER_MODEL_NOT_FOUND
        assert error.suggestion == "Pull the model first: ollama pull m"
        assert error.context["available_models"] == ["a", "b"]


class TestOtherErrors:
    """Tests for config and skill errors."""

    def test_config(self) -> None:
        error = ConfigError(key="mode")
        assert error.code == ERROR_CONFIG_INVALID
        assert error.message == "Invalid configuration value for mode"

    def test_skill_not_found(self) -> None:
        error = SkillNotFoundError(skill="cal", skills_dir="/skills")
        assert error.code == ERROR_SKILL_NOT_FOUND
        assert error.suggestion == "Check that /skills/cal contains a SKILL.md"
