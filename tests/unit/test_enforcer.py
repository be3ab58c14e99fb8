"""
Unit tests for ActionBoxEnforcer.

Tests cover:
- Loading contracts (single, bulk, invalid skipped)
- Policy rebuild and capability cache invalidation
- Classification of unclaimed tools via a classifier
- Tool call limits and whole-run checks
- Blocking decisions per enforcement mode
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from actionbox.capability.classifier import CapabilityClassifier
from actionbox.enforcer import ActionBoxEnforcer
from actionbox.errors import ClassifierConnectionError, ContractNotFoundError
from actionbox.schema import (
    ActionBox,
    CapabilityClassification,
    ClassifierConfig,
    EnforcementMode,
    EnforcerConfig,
    Severity,
    ToolCall,
    ViolationType,
)


class FakeClassifier(CapabilityClassifier):
    """Returns canned verdicts and records every call."""

    def __init__(self, verdicts: dict[str, CapabilityClassification] | None = None) -> None:
        self.verdicts = verdicts or {}
        self.calls: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = []
        self.closed = False

    def classify(
        self,
        tool_name: str,
        params: dict[str, Any],
        allowed_capabilities: list[str] | tuple[str, ...],
        denied_capabilities: list[str] | tuple[str, ...],
    ) -> CapabilityClassification:
        self.calls.append((tool_name, tuple(allowed_capabilities), tuple(denied_capabilities)))
        return self.verdicts.get(
            tool_name, CapabilityClassification(allowed=False, reason="No match")
        )

    def close(self) -> None:
        self.closed = True


class FailingClassifier(CapabilityClassifier):
    def classify(self, tool_name, params, allowed_capabilities, denied_capabilities):
        raise ClassifierConnectionError(classifier="fake", model="none", url="http://x")


@pytest.fixture
def capability_box(make_box: Callable[..., ActionBox]) -> ActionBox:
    return make_box(
        "calendar",
        allowed_tools=[{"name": "read_file"}],
        allowed_capabilities=["Google Calendar read-only access"],
        denied_capabilities=["Shell or command execution"],
    )


class TestLoading:
    """Tests for contract loading."""

    def test_defaults(self) -> None:
        enforcer = ActionBoxEnforcer()
        assert enforcer.mode == EnforcementMode.MONITOR
        assert enforcer.policy.is_empty
        assert enforcer.all_boxes() == []

    def test_mode_from_string(self) -> None:
        assert ActionBoxEnforcer("enforce").mode == EnforcementMode.ENFORCE

    def test_load_box(self, skills_dir: Path) -> None:
        enforcer = ActionBoxEnforcer()
        box = enforcer.load_box(skills_dir / "file-reader")
        assert box.skill_id == "file-reader"
        assert enforcer.get_box("file-reader") == box
        assert "read_file" in enforcer.policy.tool_index

    def test_load_box_missing(self, temp_dir: Path) -> None:
        with pytest.raises(ContractNotFoundError):
            ActionBoxEnforcer().load_box(temp_dir)

    def test_load_boxes_skips_invalid(
        self, skills_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        broken = skills_dir / "broken"
        broken.mkdir()
        (broken / "SKILL.md").write_text("x")
        (broken / "ACTIONBOX.md").write_text("not a contract")

        enforcer = ActionBoxEnforcer()
        with caplog.at_level(logging.WARNING, logger="actionbox.enforcer"):
            loaded = enforcer.load_boxes(
                [skills_dir / "file-reader", broken, skills_dir / "web-fetcher"]
            )

        assert [b.skill_id for b in loaded] == ["file-reader", "web-fetcher"]
        assert "Skipping broken" in caplog.text

    def test_load_boxes_skips_non_utf8(
        self, skills_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        bad = skills_dir / "bad"
        bad.mkdir()
        (bad / "SKILL.md").write_text("x")
        (bad / "ACTIONBOX.md").write_bytes(b"\xff\xfe")

        enforcer = ActionBoxEnforcer()
        with caplog.at_level(logging.WARNING, logger="actionbox.enforcer"):
            loaded = enforcer.load_skills_dir(skills_dir)

        assert sorted(b.skill_id for b in loaded) == ["file-reader", "web-fetcher"]
        assert "Skipping bad" in caplog.text

    def test_load_skills_dir(self, skills_dir: Path) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.load_skills_dir(skills_dir)
        assert sorted(b.skill_id for b in enforcer.all_boxes()) == ["file-reader", "web-fetcher"]

    def test_add_replaces_same_skill(
        self, make_box: Callable[..., ActionBox], file_reader_box: ActionBox
    ) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        enforcer.add_box(make_box("file-reader", allowed_tools=[{"name": "write_file"}]))
        assert list(enforcer.policy.tool_index) == ["write_file"]

    def test_remove_box(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        assert enforcer.remove_box("file-reader") is True
        assert enforcer.remove_box("file-reader") is False
        assert enforcer.policy.is_empty

    def test_set_boxes(self, file_reader_box: ActionBox, web_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        enforcer.set_boxes([web_box])
        assert [b.skill_id for b in enforcer.all_boxes()] == ["web-fetcher"]

    def test_rebuild_swaps_policy_and_clears_cache(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        before = enforcer.policy
        enforcer.cache.set("x", CapabilityClassification(allowed=True))

        enforcer.add_box(file_reader_box)

        assert enforcer.policy is not before
        assert before.is_empty
        assert enforcer.cache.size == 0

    def test_from_config_builds_classifier(self) -> None:
        config = EnforcerConfig(mode=EnforcementMode.ENFORCE, classifier=ClassifierConfig())
        enforcer = ActionBoxEnforcer.from_config(config)
        assert enforcer.mode == EnforcementMode.ENFORCE
        assert enforcer._classifier is not None
        enforcer.close()


class TestCheck:
    """Tests for check()."""

    def test_check_delegates(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        violations = enforcer.check("read_file", {"path": "/etc/passwd"})
        assert [v.type for v in violations] == [ViolationType.FILESYSTEM_READ_VIOLATION]

    def test_params_default(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        assert enforcer.check("read_file") == []

    def test_classifies_unclaimed_tool_once(self, capability_box: ActionBox) -> None:
        classifier = FakeClassifier(
            {
                "run_cmd": CapabilityClassification(
                    allowed=False,
                    reason="Runs commands",
                    matched_capability="Shell or command execution",
                )
            }
        )
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(capability_box)

        first = enforcer.check("run_cmd", {"command": "ls"})
        second = enforcer.check("run_cmd", {"command": "pwd"})

        assert [v.type for v in first] == [ViolationType.DENIED_CAPABILITY]
        assert [v.type for v in second] == [ViolationType.DENIED_CAPABILITY]
        assert classifier.calls == [
            (
                "run_cmd",
                ("Google Calendar read-only access",),
                ("Shell or command execution",),
            )
        ]
        assert enforcer.cache.has("run_cmd")

    def test_allowed_capability(self, capability_box: ActionBox) -> None:
        classifier = FakeClassifier({"gcal_list": CapabilityClassification(allowed=True)})
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(capability_box)
        assert enforcer.check("gcal_list") == []

    def test_verdict_dropped_after_rebuild(
        self, capability_box: ActionBox, make_box: Callable[..., ActionBox]
    ) -> None:
        class ReloadingClassifier(FakeClassifier):
            def classify(self, tool_name, params, allowed_capabilities, denied_capabilities):
                if not self.calls:
                    enforcer.add_box(make_box("other", allowed_tools=[{"name": "write_file"}]))
                return super().classify(
                    tool_name, params, allowed_capabilities, denied_capabilities
                )

        classifier = ReloadingClassifier({"gcal_list": CapabilityClassification(allowed=True)})
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(capability_box)

        enforcer.check("gcal_list")
        assert not enforcer.cache.has("gcal_list")

        assert enforcer.check("gcal_list") == []
        assert len(classifier.calls) == 2
        assert enforcer.cache.has("gcal_list")

    def test_claimed_tool_not_classified(self, capability_box: ActionBox) -> None:
        classifier = FakeClassifier()
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(capability_box)
        enforcer.check("read_file", {"path": "./x"})
        assert classifier.calls == []

    def test_no_capabilities_no_classification(self, file_reader_box: ActionBox) -> None:
        classifier = FakeClassifier()
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(file_reader_box)
        violations = enforcer.check("send_email")
        assert [v.type for v in violations] == [ViolationType.UNLISTED_TOOL]
        assert classifier.calls == []

    def test_reload_forces_reclassification(self, capability_box: ActionBox) -> None:
        classifier = FakeClassifier()
        enforcer = ActionBoxEnforcer(classifier=classifier)
        enforcer.add_box(capability_box)
        enforcer.check("gcal_list")
        enforcer.add_box(capability_box)
        enforcer.check("gcal_list")
        assert len(classifier.calls) == 2

    def test_classifier_failure_reports_unlisted(
        self, capability_box: ActionBox, caplog: pytest.LogCaptureFixture
    ) -> None:
        enforcer = ActionBoxEnforcer(classifier=FailingClassifier())
        enforcer.add_box(capability_box)
        with caplog.at_level(logging.WARNING, logger="actionbox.enforcer"):
            violations = enforcer.check("gcal_list")
        assert [v.type for v in violations] == [ViolationType.UNLISTED_TOOL]
        assert not enforcer.cache.has("gcal_list")
        assert "Could not classify gcal_list" in caplog.text

    def test_close_closes_classifier(self) -> None:
        classifier = FakeClassifier()
        ActionBoxEnforcer(classifier=classifier).close()
        assert classifier.closed


class TestRunChecks:
    """Tests for tool call limits and whole-run checks."""

    def test_limit_exceeded(self, make_box: Callable[..., ActionBox]) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(make_box("s", behavior={"max_tool_calls": 3}))

        violations = enforcer.check_tool_call_limit("s", 5)

        assert len(violations) == 1
        violation = violations[0]
        assert violation.type == ViolationType.TOOL_CALL_LIMIT_EXCEEDED
        assert violation.severity == Severity.MEDIUM
        assert violation.tool_name == "*"
        assert violation.message == "Skill made 5 tool calls, exceeding limit of 3"
        assert violation.rule == "behavior.maxToolCalls: 3"

    def test_limit_not_exceeded(self, make_box: Callable[..., ActionBox]) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(make_box("s", behavior={"max_tool_calls": 3}))
        assert enforcer.check_tool_call_limit("s", 3) == []

    def test_no_limit_or_unknown_skill(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(file_reader_box)
        assert enforcer.check_tool_call_limit("file-reader", 1000) == []
        assert enforcer.check_tool_call_limit("ghost", 1000) == []

    def test_check_run(self, make_box: Callable[..., ActionBox]) -> None:
        box = make_box(
            "reader",
            allowed_tools=[{"name": "read_file"}],
            filesystem={"readable": ["./data/**"]},
            behavior={"max_tool_calls": 2},
        )
        enforcer = ActionBoxEnforcer()
        enforcer.add_box(box)

        violations = enforcer.check_run(
            "reader",
            [
                ToolCall(tool_name="read_file", params={"path": "./data/a"}),
                ToolCall(tool_name="read_file", params={"path": "/etc/passwd"}),
                ToolCall(tool_name="delete_everything"),
            ],
        )

        assert [v.type for v in violations] == [
            ViolationType.FILESYSTEM_READ_VIOLATION,
            ViolationType.UNLISTED_TOOL,
            ViolationType.TOOL_CALL_LIMIT_EXCEEDED,
        ]


class TestBlocking:
    """Tests for should_block and block_reason."""

    def test_monitor_never_blocks(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer(EnforcementMode.MONITOR)
        enforcer.add_box(file_reader_box)
        violations = enforcer.check("shell_exec")
        assert violations
        assert enforcer.should_block(violations) is False

    def test_enforce_blocks_on_violations(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer(EnforcementMode.ENFORCE)
        enforcer.add_box(file_reader_box)
        violations = enforcer.check("shell_exec")
        assert enforcer.should_block(violations) is True
        assert enforcer.block_reason(violations) == (
            '[ActionBox] Tool "shell_exec" is explicitly denied by file-reader: No shell access'
        )

    def test_enforce_allows_clean_calls(self, file_reader_box: ActionBox) -> None:
        enforcer = ActionBoxEnforcer(EnforcementMode.ENFORCE)
        enforcer.add_box(file_reader_box)
        violations = enforcer.check("read_file", {"path": "./data/ok.json"})
        assert enforcer.should_block(violations) is False
        assert enforcer.block_reason(violations) is None


class TestDrift:
    """Tests for check_drift delegation."""

    def test_check_drift(self, skills_dir: Path) -> None:
        status = ActionBoxEnforcer().check_drift(skills_dir / "web-fetcher")
        assert status is not None
        assert status.skill_id == "web-fetcher"
        assert not status.has_drift
