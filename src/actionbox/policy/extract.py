"""
Parameter extraction for tool calls.

Hosts only report (tool_name, params) for each tool call; there is no
schema saying which argument is a path or a URL. This module guesses
candidate filesystem paths and network hosts from well-known argument keys.

Extraction is a strategy: the evaluator talks to ParamExtractor, and
HeuristicExtractor is the default implementation. A stricter extractor
(e.g. one driven by tool schemas) can be substituted without touching the
evaluator.

Known limitation: operation inference is substring-based, so some write
tools are classified as reads (and vice versa).
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from actionbox.schema import FileOperation

PATH_KEYS = ("path", "file_path", "filePath", "file", "filename", "directory", "dir")
URL_KEYS = ("url", "uri", "endpoint", "href")
HOST_KEYS = ("host", "hostname", "server", "domain")
SHELL_TOOL_MARKERS = ("bash", "shell")

WRITE_TOOL_PATTERNS = (
    "write",
    "create",
    "edit",
    "patch",
    "delete",
    "move",
    "copy",
    "mkdir",
    "rm",
    "save",
)

# Quoted absolute paths inside a shell command: "/etc/passwd" or '/tmp/x'
_QUOTED_PATH_RE = re.compile(r"[\"'](/[^\"']+)[\"']")


@dataclass(frozen=True)
class ExtractedResources:
    """Candidate resources recovered from one tool call."""

    paths: list[str] = field(default_factory=list)
    hosts: list[str] = field(default_factory=list)
    operation: FileOperation = FileOperation.READ


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def extract_paths(tool_name: str, params: dict[str, Any]) -> list[str]:
    """
    Extract candidate filesystem paths from tool params.

    Non-string values at path keys are skipped.
    """
    paths: list[str] = []

    for key in PATH_KEYS:
        value = params.get(key)
        if isinstance(value, str) and value:
            paths.append(value)

    lower_name = tool_name.lower()
    if any(marker in lower_name for marker in SHELL_TOOL_MARKERS):
        cmd = params.get("command")
        if cmd is None:
            cmd = params.get("cmd")
        if isinstance(cmd, str):
            paths.extend(_QUOTED_PATH_RE.findall(cmd))

    # Glob/search tools: {"pattern": "*.py", "path": "src"}
    path_value = params.get("path")
    if params.get("pattern") and isinstance(path_value, str) and path_value:
        paths.append(path_value)

    return _dedupe(paths)


def _hostname_from_url(value: str) -> str | None:
    """Parse a URL and return its hostname, or None if it isn't a URL."""
    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
    except ValueError:
        return None
    if not parsed.scheme or not hostname:
        return None
    return hostname


def extract_hosts(params: dict[str, Any]) -> list[str]:
    """
    Extract candidate network hosts from tool params.

    URL-like keys are parsed and their hostname taken; values that do not
    parse as URLs are skipped. Host-like keys are taken verbatim.
    """
    hosts: list[str] = []

    for key in URL_KEYS:
        value = params.get(key)
        if isinstance(value, str) and value:
            hostname = _hostname_from_url(value)
            if hostname:
                hosts.append(hostname)

    for key in HOST_KEYS:
        value = params.get(key)
        if isinstance(value, str) and value:
            hosts.append(value)

    return _dedupe(hosts)


def infer_file_operation(tool_name: str) -> FileOperation:
    """Classify a tool as a write if its name contains a write verb."""
    lower_name = tool_name.lower()
    if any(verb in lower_name for verb in WRITE_TOOL_PATTERNS):
        return FileOperation.WRITE
    return FileOperation.READ


class ParamExtractor(ABC):
    """Strategy for recovering resources from a tool call."""

    @abstractmethod
    def extract(self, tool_name: str, params: dict[str, Any]) -> ExtractedResources:
        """Return the paths, hosts and file operation for one tool call."""
        ...


class HeuristicExtractor(ParamExtractor):
    """Default extractor based on well-known argument names."""

    def extract(self, tool_name: str, params: dict[str, Any]) -> ExtractedResources:
        return ExtractedResources(
            paths=extract_paths(tool_name, params),
            hosts=extract_hosts(params),
            operation=infer_file_operation(tool_name),
        )
