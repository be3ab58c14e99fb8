"""
Lenient JSON parsing for classifier output.

Small local models asked for "exactly one JSON object" still wrap it in
markdown fences, add prose, leave trailing commas or emit Python literals.
parse_json_safely() extracts and repairs the object; callers turn a failure
into a denial rather than an exception.
"""

import json
import re
from typing import Any

MAX_REPAIR_ATTEMPTS = 3

_FENCE_PATTERNS = (
    re.compile(r"```json\s*([\s\S]*?)\s*```"),
    re.compile(r"```\s*([\s\S]*?)\s*```"),
)


def extract_json_object(text: str) -> str | None:
    """
    Pull the first JSON object out of mixed text.

    Fenced blocks are preferred; otherwise the first balanced {...} span
    (ignoring braces inside strings) is returned.
    """
    if not text or not text.strip():
        return None
    text = text.strip()

    for pattern in _FENCE_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip().startswith("{"):
            return match.group(1).strip()

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i, char in enumerate(text[start:], start):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _repair_once(text: str) -> str:
    """Apply one round of repairs."""
    text = re.sub(r",\s*([}\]])", r"\1", text)
    if '"' not in text and "'" in text:
        text = text.replace("'", '"')
    text = re.sub(r"([{,])\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*:", r'\1"\2":', text)
    text = re.sub(r"\bTrue\b", "true", text)
    text = re.sub(r"\bFalse\b", "false", text)
    text = re.sub(r"\bNone\b", "null", text)
    return text


def repair_json(text: str) -> str | None:
    """Repair common model mistakes; None if the result still isn't JSON."""
    for _ in range(MAX_REPAIR_ATTEMPTS):
        try:
            json.loads(text)
            return text
        except json.JSONDecodeError:
            pass
        repaired = _repair_once(text)
        if repaired == text:
            break
        text = repaired

    try:
        json.loads(text)
        return text
    except json.JSONDecodeError:
        return None


def parse_json_safely(text: str) -> tuple[Any, str | None]:
    """
    Parse model output with extraction and repair.

    Returns:
        (parsed, None) on success, (None, error_message) on failure
    """
    if not text or not text.strip():
        return None, "Empty input"

    try:
        return json.loads(text), None
    except json.JSONDecodeError:
        pass

    candidate = extract_json_object(text) or text
    repaired = repair_json(candidate)
    if repaired is None:
        return None, "No valid JSON found in response"
    return json.loads(repaired), None


def validate_classification_json(data: Any) -> tuple[bool, str | None]:
    """
    Check the shape {"allowed": bool, "reason": str, "matchedCapability": str|null}.

    Returns:
        (is_valid, error_message)
    """
    if not isinstance(data, dict):
        return False, f"Expected object, got {type(data).__name__}"
    if not isinstance(data.get("allowed"), bool):
        return False, "'allowed' must be a boolean"
    if "reason" in data and not isinstance(data["reason"], str):
        return False, "'reason' must be a string"
    matched = data.get("matchedCapability")
    if matched is not None and not isinstance(matched, str):
        return False, "'matchedCapability' must be a string or null"
    return True, None
