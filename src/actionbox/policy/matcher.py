"""
Tool call evaluator.

match_tool_call() checks one (tool_name, params) pair against the merged
GlobalPolicy and returns every violation found. It never raises for a
detected problem and never blocks: severity tells the caller how urgent a
violation is, and the caller decides whether to block (enforce mode) or only
alert (monitor mode).

Evaluation order:
    1. Global tool denial (critical, short-circuits everything else)
    2. Attribution: which contracts claim the tool
    3. Unclaimed tool: unlisted_tool, or the cached capability verdict
    4. Resource extraction from params
    5. Global denied paths (critical)
    6. Global denied hosts (critical)
    7. Per-claimant filesystem/network rules (high); a resource passes if
       ANY claiming contract permits it

The evaluator is stateless. The only state shared across calls is the
policy snapshot and the capability cache, both owned by the caller.
"""

from typing import Any

from actionbox.capability.cache import CapabilityCache
from actionbox.policy.builder import GlobalPolicy, attribute_tool_to_skills
from actionbox.policy.extract import HeuristicExtractor, ParamExtractor
from actionbox.policy.rules import (
    check_filesystem_access,
    check_network_access,
    host_matches_any,
    path_matches_any,
)
from actionbox.schema import ActionBox, FileOperation, Severity, Violation, ViolationType

UNKNOWN_SKILL = "unknown"

_DEFAULT_EXTRACTOR = HeuristicExtractor()


def match_tool_call(
    tool_name: str,
    params: dict[str, Any],
    policy: GlobalPolicy,
    capability_cache: CapabilityCache | None = None,
    extractor: ParamExtractor | None = None,
) -> list[Violation]:
    """
    Match a tool call against the global policy.

    Args:
        tool_name: Tool being called
        params: Raw tool arguments
        policy: Merged policy snapshot
        capability_cache: Classifications for tools not named in any
            contract. Without a cache, capability lists are ignored.
        extractor: Strategy for finding paths/hosts in params

    Returns:
        Violations in evaluation order (empty if the call is fine)
    """
    if policy.is_empty:
        return []

    denied = policy.global_denied_tools.get(tool_name)
    if denied is not None:
        denying = ", ".join(denied.denying_skill_ids)
        return [
            Violation(
                type=ViolationType.DENIED_TOOL,
                severity=Severity.CRITICAL,
                skill_id=denying,
                tool_name=tool_name,
                message=(
                    f'Tool "{tool_name}" is explicitly denied by {denying}: '
                    f"{denied.reason}"
                ),
                rule=f"deniedTools: {tool_name}",
                details={"denying_skills": list(denied.denying_skill_ids)},
            )
        ]

    claiming = attribute_tool_to_skills(tool_name, policy)
    violations: list[Violation] = []

    if not claiming:
        violations.extend(_check_unclaimed_tool(tool_name, policy, capability_cache))

    resources = (extractor or _DEFAULT_EXTRACTOR).extract(tool_name, params)
    attributed = claiming[0] if claiming else UNKNOWN_SKILL

    flagged_paths: set[str] = set()
    for path in resources.paths:
        if path_matches_any(path, policy.global_denied_paths):
            flagged_paths.add(path)
            violations.append(
                Violation(
                    type=ViolationType.FILESYSTEM_DENIED,
                    severity=Severity.CRITICAL,
                    skill_id=attributed,
                    tool_name=tool_name,
                    message=f'Path "{path}" matches a globally denied filesystem pattern',
                    rule="filesystem.denied",
                    details={"path": path},
                )
            )

    flagged_hosts: set[str] = set()
    for host in resources.hosts:
        pattern = host_matches_any(host, policy.global_denied_hosts)
        if pattern is not None:
            flagged_hosts.add(host)
            violations.append(
                Violation(
                    type=ViolationType.NETWORK_VIOLATION,
                    severity=Severity.CRITICAL,
                    skill_id=attributed,
                    tool_name=tool_name,
                    message=f'Host "{host}" matches globally denied pattern "{pattern}"',
                    rule="network.deniedHosts",
                    details={"host": host, "pattern": pattern},
                )
            )

    if claiming:
        claimants = [policy.boxes[s] for s in dict.fromkeys(claiming) if s in policy.boxes]
        joined = ", ".join(claiming)

        for path in resources.paths:
            if path in flagged_paths:
                continue
            message = _first_filesystem_denial(path, resources.operation, claimants)
            if message is None:
                continue
            is_write = resources.operation == FileOperation.WRITE
            violations.append(
                Violation(
                    type=(
                        ViolationType.FILESYSTEM_WRITE_VIOLATION
                        if is_write
                        else ViolationType.FILESYSTEM_READ_VIOLATION
                    ),
                    severity=Severity.HIGH,
                    skill_id=joined,
                    tool_name=tool_name,
                    message=message,
                    rule="filesystem.writable" if is_write else "filesystem.readable",
                    details={"path": path, "operation": resources.operation.value},
                )
            )

        for host in resources.hosts:
            if host in flagged_hosts:
                continue
            message = _first_network_denial(host, claimants)
            if message is None:
                continue
            violations.append(
                Violation(
                    type=ViolationType.NETWORK_VIOLATION,
                    severity=Severity.HIGH,
                    skill_id=joined,
                    tool_name=tool_name,
                    message=message,
                    rule="network.allowedHosts",
                    details={"host": host},
                )
            )

    return violations


def _check_unclaimed_tool(
    tool_name: str,
    policy: GlobalPolicy,
    capability_cache: CapabilityCache | None,
) -> list[Violation]:
    """Decide what an unclaimed tool call produces."""
    if policy.has_capabilities and capability_cache is not None:
        classification = capability_cache.get(tool_name)
        if classification is not None:
            if classification.allowed:
                return []
            if classification.matched_capability:
                return [
                    Violation(
                        type=ViolationType.DENIED_CAPABILITY,
                        severity=Severity.CRITICAL,
                        skill_id=UNKNOWN_SKILL,
                        tool_name=tool_name,
                        message=(
                            f'Tool "{tool_name}" matches denied capability '
                            f'"{classification.matched_capability}": {classification.reason}'
                        ),
                        rule=f"deniedCapabilities: {classification.matched_capability}",
                        details={"matched_capability": classification.matched_capability},
                    )
                ]
            return [
                Violation(
                    type=ViolationType.UNLISTED_CAPABILITY,
                    severity=Severity.HIGH,
                    skill_id=UNKNOWN_SKILL,
                    tool_name=tool_name,
                    message=(
                        f'Tool "{tool_name}" does not match any allowed capability: '
                        f"{classification.reason}"
                    ),
                    rule="allowedCapabilities",
                )
            ]

    return [
        Violation(
            type=ViolationType.UNLISTED_TOOL,
            severity=Severity.HIGH,
            skill_id=UNKNOWN_SKILL,
            tool_name=tool_name,
            message=f'Tool "{tool_name}" is not in any contract\'s allowed tools list',
            rule="allowedTools",
        )
    ]


def _first_filesystem_denial(
    path: str,
    operation: FileOperation,
    claimants: list[ActionBox],
) -> str | None:
    """None if any claimant permits the path, else the first denial message."""
    first: str | None = None
    for box in claimants:
        message = check_filesystem_access(path, operation, box.filesystem)
        if message is None:
            return None
        if first is None:
            first = message
    return first


def _first_network_denial(host: str, claimants: list[ActionBox]) -> str | None:
    """None if any claimant permits the host, else the first denial message."""
    first: str | None = None
    for box in claimants:
        message = check_network_access(host, box.network)
        if message is None:
            return None
        if first is None:
            first = message
    return first
