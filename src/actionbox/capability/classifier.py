"""
Capability classifier.

When a tool call names a tool that no contract lists, contracts may still
describe what the skill may do in plain language ("Google Calendar read-only
access", "Shell or command execution"). A classifier decides which, if any,
of those descriptions a tool matches.

The evaluator never calls a classifier. The enforcer calls it for unseen
tool names and stores the verdict in the CapabilityCache; the evaluator
only reads the cache.

Requirements for OllamaClassifier:
    - Ollama must be installed and running (`ollama serve`)
    - The configured model must be pulled (`ollama pull qwen2.5:0.5b`)
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from actionbox.capability.json_repair import parse_json_safely, validate_classification_json
from actionbox.errors import (
    ClassifierConnectionError,
    ClassifierModelNotFoundError,
    ClassifierTimeoutError,
)
from actionbox.schema import CapabilityClassification, ClassifierConfig

logger = logging.getLogger(__name__)

CLASSIFICATION_PROMPT = """You are a tool-capability classifier. Given a tool call and a set of capability descriptions, determine whether the tool call aligns with the allowed capabilities or matches any denied capabilities.

Tool name: {tool_name}
Tool parameters: {params}

Allowed capabilities:
{allowed_capabilities}

Denied capabilities:
{denied_capabilities}

Respond with EXACTLY one JSON object (no markdown fencing, no extra text):
{"allowed": true/false, "reason": "brief explanation", "matchedCapability": "the capability that matched, or null"}

Rules:
- If the tool call clearly matches a denied capability, set allowed=false and matchedCapability to the denied capability.
- If the tool call clearly aligns with an allowed capability, set allowed=true and matchedCapability to the allowed capability.
- If the tool call does not match any denied capability AND does not match any allowed capability, set allowed=false, reason="Tool does not match any allowed capability", matchedCapability=null.
- Be practical: match based on the conceptual purpose of the tool, not just its exact name."""


def _format_capabilities(capabilities: list[str] | tuple[str, ...]) -> str:
    if not capabilities:
        return "- (none)"
    return "\n".join(f"- {c}" for c in capabilities)


def build_classification_prompt(
    tool_name: str,
    params: dict[str, Any],
    allowed_capabilities: list[str] | tuple[str, ...],
    denied_capabilities: list[str] | tuple[str, ...],
) -> str:
    """Render the classification prompt for one tool call."""
    # str.replace rather than .format(): the template contains literal braces
    return (
        CLASSIFICATION_PROMPT.replace("{tool_name}", tool_name)
        .replace("{params}", json.dumps(params, default=str))
        .replace("{allowed_capabilities}", _format_capabilities(allowed_capabilities))
        .replace("{denied_capabilities}", _format_capabilities(denied_capabilities))
    )


def parse_classification(text: str) -> CapabilityClassification:
    """
    Turn raw model output into a classification.

    Output that cannot be parsed or has the wrong shape is treated as a
    denial with no matched capability.
    """
    parsed, error = parse_json_safely(text)
    if error is None:
        is_valid, error = validate_classification_json(parsed)
    if error is not None:
        logger.warning("Unparseable classifier response: %s", error)
        return CapabilityClassification(
            allowed=False,
            reason=f"Failed to parse capability classification response: {text[:200]}",
        )
    return CapabilityClassification(
        allowed=parsed["allowed"],
        reason=parsed.get("reason", ""),
        matched_capability=parsed.get("matchedCapability") or None,
    )


class CapabilityClassifier(ABC):
    """Interface for anything that can classify a tool call by capability."""

    @abstractmethod
    def classify(
        self,
        tool_name: str,
        params: dict[str, Any],
        allowed_capabilities: list[str] | tuple[str, ...],
        denied_capabilities: list[str] | tuple[str, ...],
    ) -> CapabilityClassification:
        """Classify a tool call against capability descriptions."""
        ...

    def close(self) -> None:
        """Release resources held by the classifier."""


class OllamaClassifier(CapabilityClassifier):
    """
    Capability classifier backed by a local Ollama model.

    Example:
        with OllamaClassifier(ClassifierConfig(model="qwen2.5:0.5b")) as clf:
            verdict = clf.classify("run_cmd", {}, ["File reading"], ["Shell execution"])
    """

    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self.config = config or ClassifierConfig()
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "OllamaClassifier":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def classify(
        self,
        tool_name: str,
        params: dict[str, Any],
        allowed_capabilities: list[str] | tuple[str, ...],
        denied_capabilities: list[str] | tuple[str, ...],
    ) -> CapabilityClassification:
        """
        Ask the model which capability a tool call matches.

        Raises:
            ClassifierConnectionError: Ollama unreachable after retries
            ClassifierTimeoutError: Request timed out after retries
            ClassifierModelNotFoundError: Model not pulled
        """
        prompt = build_classification_prompt(
            tool_name, params, allowed_capabilities, denied_capabilities
        )
        content = self._call_with_retries(prompt)
        classification = parse_classification(content)
        logger.debug(
            "Classified %s: allowed=%s matched=%s",
            tool_name,
            classification.allowed,
            classification.matched_capability,
        )
        return classification

    def _call_with_retries(self, prompt: str) -> str:
        last_error: ClassifierConnectionError | ClassifierTimeoutError | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                return self._call(prompt)
            except (ClassifierConnectionError, ClassifierTimeoutError) as e:
                last_error = e
                if attempt < self.config.max_retries:
                    logger.debug("Classifier attempt %d failed: %s", attempt + 1, e.message)
                    time.sleep(self.config.retry_delay_seconds)

        if last_error is not None:
            raise last_error
        raise ClassifierConnectionError(
            classifier="ollama",
            model=self.config.model,
            url=self.config.base_url,
        )

    def _call(self, prompt: str) -> str:
        client = self._get_client()
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
            },
        }

        try:
            response = client.post("/api/chat", json=payload)
        except httpx.ConnectError as e:
            raise ClassifierConnectionError(
                classifier="ollama",
                model=self.config.model,
                url=self.config.base_url,
                underlying_error=str(e),
            ) from e
        except httpx.TimeoutException as e:
            raise ClassifierTimeoutError(
                classifier="ollama",
                model=self.config.model,
                timeout_seconds=self.config.timeout_seconds,
            ) from e

        if response.status_code == 404:
            raise ClassifierModelNotFoundError(
                classifier="ollama",
                model=self.config.model,
                available_models=self._list_models(),
            )

        if response.status_code != 200:
            raise ClassifierConnectionError(
                classifier="ollama",
                model=self.config.model,
                url=self.config.base_url,
                underlying_error=f"HTTP {response.status_code}: {response.text}",
            )

        try:
            data = response.json()
        except json.JSONDecodeError:
            return response.text

        message = data.get("message", {}) if isinstance(data, dict) else {}
        return message.get("content", "")

    def _list_models(self) -> list[str]:
        try:
            response = self._get_client().get("/api/tags")
        except httpx.HTTPError:
            return []
        if response.status_code != 200:
            return []
        return [m["name"] for m in response.json().get("models", [])]
