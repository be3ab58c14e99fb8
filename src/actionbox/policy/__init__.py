"""
Policy engine for ActionBox.

Every tool call is checked against the merged view of all loaded contracts.

Key concepts:
    - GlobalPolicy: immutable merge of every contract, rebuilt on change
    - match_tool_call: pure evaluator returning zero or more Violations
    - Rule matching: filesystem globs and host wildcards
    - ParamExtractor: finds paths and hosts in tool arguments

The engine detects; it never blocks. Whether a violation stops a tool call
is decided by the caller from the enforcement mode.
"""

from actionbox.policy.builder import (
    DeniedToolEntry,
    GlobalPolicy,
    attribute_tool_to_skills,
    build_global_policy,
)
from actionbox.policy.extract import (
    ExtractedResources,
    HeuristicExtractor,
    ParamExtractor,
    extract_hosts,
    extract_paths,
    infer_file_operation,
)
from actionbox.policy.matcher import match_tool_call
from actionbox.policy.rules import (
    check_filesystem_access,
    check_network_access,
    glob_match,
    host_matches,
    host_matches_any,
    path_matches_any,
)

__all__ = [
    "DeniedToolEntry",
    "ExtractedResources",
    "GlobalPolicy",
    "HeuristicExtractor",
    "ParamExtractor",
    "attribute_tool_to_skills",
    "build_global_policy",
    "check_filesystem_access",
    "check_network_access",
    "extract_hosts",
    "extract_paths",
    "glob_match",
    "host_matches",
    "host_matches_any",
    "infer_file_operation",
    "match_tool_call",
    "path_matches_any",
]
