"""
Prompt directive built from loaded contracts.

The directive is injected into the agent's system prompt so each skill is
told up front what its contract allows. It is advisory; the enforcer still
checks every tool call.
"""

from collections.abc import Iterable
from xml.sax.saxutils import escape

from actionbox.schema import ActionBox


def _element(tag: str, text: str, indent: int) -> str:
    return f"{' ' * indent}<{tag}>{escape(text)}</{tag}>"


def _list_block(tag: str, item_tag: str, items: list[str]) -> list[str]:
    if not items:
        return []
    return [
        f"    <{tag}>",
        *(_element(item_tag, item, 6) for item in items),
        f"    </{tag}>",
    ]


def build_skill_directive(box: ActionBox) -> str:
    """Render one contract as a <skill> element."""
    behavior = box.behavior
    lines = [
        f'  <skill name="{escape(box.skill_id)}">',
        _element("purpose", behavior.summary, 4),
        *_list_block("principles", "principle", behavior.principles),
        *_list_block("always-do", "rule", behavior.always_do),
        *_list_block("never-do", "rule", behavior.never_do),
    ]

    if box.allowed_tools:
        lines.append(_element("allowed-tools", ", ".join(t.name for t in box.allowed_tools), 4))
    if box.denied_tools:
        lines.append(_element("denied-tools", ", ".join(t.name for t in box.denied_tools), 4))

    fs = box.filesystem
    fs_lines = [
        _element(tag, ", ".join(patterns), 6)
        for tag, patterns in (
            ("readable", fs.readable),
            ("writable", fs.writable),
            ("denied", fs.denied),
        )
        if patterns
    ]
    if fs_lines:
        lines += ["    <filesystem>", *fs_lines, "    </filesystem>"]

    net = box.network
    net_lines = [
        _element(tag, ", ".join(hosts), 6)
        for tag, hosts in (("allowed", net.allowed_hosts), ("denied", net.denied_hosts))
        if hosts
    ]
    if net_lines:
        lines += ["    <network>", *net_lines, "    </network>"]

    lines.append("  </skill>")
    return "\n".join(lines)


def build_directive(boxes: Iterable[ActionBox]) -> str:
    """
    Render every contract inside one <actionbox-directive> block.

    Returns an empty string when there are no contracts.
    """
    blocks = [build_skill_directive(box) for box in boxes]
    if not blocks:
        return ""
    body = "\n".join(blocks)
    return f"<actionbox-directive>\n{body}\n</actionbox-directive>"
