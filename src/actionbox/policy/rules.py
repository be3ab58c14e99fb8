"""
Rule primitives for filesystem and network checks.

These are pure functions with no knowledge of contracts or skills. They can
be called on their own for ad hoc queries (audit tooling, tests) and are the
building blocks of the tool call evaluator.

Precedence:
    - Deny patterns always win over allow patterns
    - An empty allow list means "unrestricted", never "deny everything"

Glob semantics:
    - Patterns are matched against the literal path string; nothing is
      expanded or resolved ("~/.ssh/**" matches the string "~/.ssh/id_rsa")
    - "**" as a whole segment matches zero or more path segments
    - "*" and "?" match within a single segment, "[...]" is a character class
    - "{a,b}" expands to alternatives
    - Dotfiles are matched like any other name
    - "." segments are ignored; ".." is only matched by a literal ".."
"""

import re
from fnmatch import fnmatchcase
from functools import lru_cache

from actionbox.schema import FileOperation, FilesystemRules, NetworkRules

GLOBSTAR = "**"
CURRENT_DIR = "."
PARENT_DIR = ".."

_BRACE_RE = re.compile(r"\{([^{}]*,[^{}]*)\}")


@lru_cache(maxsize=1024)
def _expand_braces(pattern: str) -> tuple[str, ...]:
    """Expand the first {a,b} group recursively."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return (pattern,)
    head = pattern[: match.start()]
    tail = pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(_expand_braces(head + option + tail))
    return tuple(expanded)


def _segments(value: str) -> tuple[str, ...]:
    """Split on "/" and drop "." segments ("./data/x" -> ("data", "x"))."""
    return tuple(seg for seg in value.split("/") if seg != CURRENT_DIR)


@lru_cache(maxsize=1024)
def _split_pattern(pattern: str) -> tuple[tuple[str, ...], ...]:
    """Split each brace alternative of a pattern into segments."""
    return tuple(_segments(alt) for alt in _expand_braces(pattern))


def _segment_matches(segment: str, pattern: str) -> bool:
    # ".." only ever matches a literal ".." so wildcards can't climb out
    if segment == PARENT_DIR:
        return pattern == PARENT_DIR
    return fnmatchcase(segment, pattern)


def _match_segments(path: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    """Segment-wise match with "**" consuming any number of segments except ".."."""
    # Iterative backtracking over the last globstar seen
    pi = 0
    si = 0
    star_pi = -1
    star_si = -1
    while si < len(path):
        if pi < len(pattern) and pattern[pi] == GLOBSTAR:
            star_pi = pi
            star_si = si
            pi += 1
        elif pi < len(pattern) and _segment_matches(path[si], pattern[pi]):
            pi += 1
            si += 1
        elif star_pi != -1 and path[star_si] != PARENT_DIR:
            pi = star_pi + 1
            star_si += 1
            si = star_si
        else:
            return False
    while pi < len(pattern) and pattern[pi] == GLOBSTAR:
        pi += 1
    return pi == len(pattern)


def glob_match(path: str, pattern: str) -> bool:
    """Check a single path against a single glob pattern."""
    segments = _segments(path)
    return any(_match_segments(segments, alt) for alt in _split_pattern(pattern))


def path_matches_any(path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    """
    Check if a path matches any of the given glob patterns.

    Examples:
        path_matches_any("./data/a/b.json", ["./data/**"]) -> True
        path_matches_any("config/.env", ["**/.env"]) -> True
        path_matches_any("anything", []) -> False
    """
    return any(glob_match(path, pattern) for pattern in patterns)


def check_filesystem_access(
    path: str,
    operation: FileOperation | str,
    rules: FilesystemRules,
) -> str | None:
    """
    Check one path against one contract's filesystem rules.

    Args:
        path: Path as supplied by the tool call
        operation: "read" or "write"
        rules: The contract's filesystem section

    Returns:
        A violation message, or None if access is allowed
    """
    operation = FileOperation(operation)

    # Denied paths always take priority
    if path_matches_any(path, rules.denied):
        return f'Path "{path}" matches a denied filesystem pattern'

    if operation == FileOperation.READ:
        if rules.readable and not path_matches_any(path, rules.readable):
            return f'Read access to "{path}" is not covered by any readable pattern'
    elif rules.writable and not path_matches_any(path, rules.writable):
        return f'Write access to "{path}" is not covered by any writable pattern'

    return None


def host_matches(host: str, pattern: str) -> bool:
    """
    Match a hostname against a host pattern.

    Supports "*" (any host), "*.suffix" (any subdomain, not the bare
    domain) and exact match. Comparison is case-insensitive.

    Examples:
        host_matches("api.slack.com", "*.slack.com") -> True
        host_matches("slack.com", "*.slack.com") -> False
    """
    host = host.lower()
    pattern = pattern.lower()

    if pattern == "*":
        return True
    if pattern.startswith("*."):
        return host.endswith(pattern[1:])
    return host == pattern


def host_matches_any(host: str, patterns: list[str] | tuple[str, ...]) -> str | None:
    """Return the first pattern matching host, or None."""
    for pattern in patterns:
        if host_matches(host, pattern):
            return pattern
    return None


def check_network_access(host: str, rules: NetworkRules) -> str | None:
    """
    Check one host against one contract's network rules.

    Returns:
        A violation message, or None if access is allowed
    """
    denied = host_matches_any(host, rules.denied_hosts)
    if denied is not None:
        return f'Host "{host}" matches denied pattern "{denied}"'

    if rules.allowed_hosts and host_matches_any(host, rules.allowed_hosts) is None:
        return f'Host "{host}" is not in the allowed hosts list'

    return None
