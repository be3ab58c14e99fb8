"""
ActionBox - Behavioral contracts for agent skills.

Every skill ships a contract (ACTIONBOX.md) describing which tools it may
call, which files and hosts it may touch, and what it must never do.
ActionBox merges all loaded contracts into one global policy and checks each
tool call against it.

It provides:
- A pure policy builder and tool call evaluator
- Glob and host-wildcard rule matching
- Capability classification for tools no contract names
- Monitor (alert only) and enforce (block) modes
- Drift detection between SKILL.md and its contract

Example usage:
    $ actionbox check read_file --param path=/etc/passwd
    $ actionbox policy
    $ actionbox audit
"""

__version__ = "0.1.0"
__author__ = "ActionBox Contributors"

__all__ = [
    "__version__",
    "__author__",
]
