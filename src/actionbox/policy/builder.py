"""
Global policy builder.

Merges every loaded contract into one read-only GlobalPolicy. In a
multi-skill environment all contracts are active at once, so a tool call
cannot be checked against "its" contract; instead it is checked against the
merged view:

    - A tool is globally denied if ANY contract denies it and NO contract
      allows it. One allow overrides every other contract's denial.
    - A tool is "claimed" by every contract listing it in allowedTools.
    - Denied filesystem patterns and denied hosts are the UNION of all
      contracts' deny lists.
    - Capability lists are the union of all contracts' lists.

The builder is a pure function: the same contracts always produce an equal
policy, and the result is never mutated afterwards. Rebuilding means
building a new snapshot and swapping the reference.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from actionbox.schema import ActionBox


@dataclass(frozen=True)
class DeniedToolEntry:
    """Why a tool is denied and which skills deny it."""

    reason: str
    denying_skill_ids: tuple[str, ...]


@dataclass(frozen=True)
class GlobalPolicy:
    """
    Merged, read-only decision structure.

    Attributes:
        tool_index: Tool name -> skill IDs that allow it, in load order
        global_denied_tools: Tools denied by some contract and allowed by none
        global_denied_paths: Union of denied filesystem patterns
        global_denied_hosts: Union of denied host patterns
        all_allowed_capabilities: Union of allowed capability descriptions
        all_denied_capabilities: Union of denied capability descriptions
        boxes: Skill ID -> contract
    """

    tool_index: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    global_denied_tools: Mapping[str, DeniedToolEntry] = field(
        default_factory=lambda: MappingProxyType({})
    )
    global_denied_paths: tuple[str, ...] = ()
    global_denied_hosts: tuple[str, ...] = ()
    all_allowed_capabilities: tuple[str, ...] = ()
    all_denied_capabilities: tuple[str, ...] = ()
    boxes: Mapping[str, ActionBox] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_empty(self) -> bool:
        """True when no contracts are loaded (nothing to enforce)."""
        return not self.boxes

    @property
    def has_capabilities(self) -> bool:
        """True when any contract declares capability descriptions."""
        return bool(self.all_allowed_capabilities or self.all_denied_capabilities)


def build_global_policy(boxes: Iterable[ActionBox]) -> GlobalPolicy:
    """
    Build a GlobalPolicy from a set of loaded contracts.

    Args:
        boxes: Contracts in load order. A later contract with the same
            skill ID replaces an earlier one.

    Returns:
        A new immutable GlobalPolicy. Zero contracts give an empty,
        fully permissive policy.
    """
    box_map: dict[str, ActionBox] = {}
    for box in boxes:
        box_map[box.skill_id] = box

    tool_index: dict[str, list[str]] = {}
    allowed_names: set[str] = set()
    denied_reasons: dict[str, str] = {}
    denied_by: dict[str, list[str]] = {}
    # dicts as ordered sets
    denied_paths: dict[str, None] = {}
    denied_hosts: dict[str, None] = {}
    allowed_caps: dict[str, None] = {}
    denied_caps: dict[str, None] = {}

    for box in box_map.values():
        for tool in box.allowed_tools:
            allowed_names.add(tool.name)
            tool_index.setdefault(tool.name, []).append(box.skill_id)

        for tool in box.denied_tools:
            denied_reasons.setdefault(tool.name, tool.reason)
            denied_by.setdefault(tool.name, []).append(box.skill_id)

        denied_paths.update(dict.fromkeys(box.filesystem.denied))
        denied_hosts.update(dict.fromkeys(box.network.denied_hosts))
        allowed_caps.update(dict.fromkeys(box.allowed_capabilities))
        denied_caps.update(dict.fromkeys(box.denied_capabilities))

    global_denied = {
        name: DeniedToolEntry(
            reason=denied_reasons[name],
            denying_skill_ids=tuple(skills),
        )
        for name, skills in denied_by.items()
        if name not in allowed_names
    }

    return GlobalPolicy(
        tool_index=MappingProxyType(
            {name: tuple(skills) for name, skills in tool_index.items()}
        ),
        global_denied_tools=MappingProxyType(global_denied),
        global_denied_paths=tuple(denied_paths),
        global_denied_hosts=tuple(denied_hosts),
        all_allowed_capabilities=tuple(allowed_caps),
        all_denied_capabilities=tuple(denied_caps),
        boxes=MappingProxyType(box_map),
    )


def attribute_tool_to_skills(tool_name: str, policy: GlobalPolicy) -> list[str]:
    """Return the skill IDs whose contracts allow this tool."""
    return list(policy.tool_index.get(tool_name, ()))
