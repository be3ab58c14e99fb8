"""
ActionBox enforcer.

The enforcer owns the loaded contracts, the current GlobalPolicy snapshot
and the capability cache. It is the only component with mutable state:

    - Loading, adding or removing a contract rebuilds the policy and clears
      the capability cache in one critical section, so no check ever sees a
      new policy with verdicts computed against the old one.
    - check() reads the current snapshot once and evaluates against it;
      concurrent checks never block each other except while classifying.

The enforcer never blocks a tool call itself. should_block() and
block_reason() tell the host what to do given the enforcement mode.
"""

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from actionbox.capability.cache import CapabilityCache
from actionbox.capability.classifier import CapabilityClassifier, OllamaClassifier
from actionbox.contract.loader import check_drift, discover_skill_dirs, load_action_box
from actionbox.errors import ClassifierError, ContractError
from actionbox.policy.builder import GlobalPolicy, attribute_tool_to_skills, build_global_policy
from actionbox.policy.extract import ParamExtractor
from actionbox.policy.matcher import match_tool_call
from actionbox.schema import (
    ActionBox,
    DriftStatus,
    EnforcementMode,
    EnforcerConfig,
    Severity,
    ToolCall,
    Violation,
    ViolationType,
)

logger = logging.getLogger(__name__)

BLOCK_PREFIX = "[ActionBox]"


class ActionBoxEnforcer:
    """
    Checks tool calls against all loaded contracts.

    Example:
        >>> enforcer = ActionBoxEnforcer(EnforcementMode.ENFORCE)
        >>> enforcer.load_skills_dir("skills")
        >>> violations = enforcer.check("read_file", {"path": "/etc/passwd"})
        >>> if enforcer.should_block(violations):
        ...     print(enforcer.block_reason(violations))
    """

    def __init__(
        self,
        mode: EnforcementMode | str = EnforcementMode.MONITOR,
        classifier: CapabilityClassifier | None = None,
        extractor: ParamExtractor | None = None,
    ) -> None:
        self._mode = EnforcementMode(mode)
        self._classifier = classifier
        self._extractor = extractor
        self._boxes: dict[str, ActionBox] = {}
        self._policy = build_global_policy([])
        self._cache = CapabilityCache()
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: EnforcerConfig,
        classifier: CapabilityClassifier | None = None,
        extractor: ParamExtractor | None = None,
    ) -> "ActionBoxEnforcer":
        """Create an enforcer from config, building an Ollama classifier if configured."""
        if classifier is None and config.classifier is not None:
            classifier = OllamaClassifier(config.classifier)
        return cls(mode=config.mode, classifier=classifier, extractor=extractor)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def mode(self) -> EnforcementMode:
        return self._mode

    @property
    def policy(self) -> GlobalPolicy:
        """The current policy snapshot."""
        with self._lock:
            return self._policy

    @property
    def cache(self) -> CapabilityCache:
        return self._cache

    def get_box(self, skill_id: str) -> ActionBox | None:
        with self._lock:
            return self._boxes.get(skill_id)

    def all_boxes(self) -> list[ActionBox]:
        with self._lock:
            return list(self._boxes.values())

    def _rebuild(self) -> None:
        # caller holds self._lock
        self._policy = build_global_policy(self._boxes.values())
        self._cache.clear()
        logger.debug(
            "Rebuilt policy: %d contract(s), %d globally denied tool(s)",
            len(self._boxes),
            len(self._policy.global_denied_tools),
        )

    # =========================================================================
    # Loading
    # =========================================================================

    def add_box(self, box: ActionBox) -> None:
        """Add or replace a contract and rebuild the policy."""
        with self._lock:
            self._boxes[box.skill_id] = box
            self._rebuild()

    def set_boxes(self, boxes: Iterable[ActionBox]) -> None:
        """Replace every loaded contract at once."""
        with self._lock:
            self._boxes = {box.skill_id: box for box in boxes}
            self._rebuild()

    def remove_box(self, skill_id: str) -> bool:
        """Unload a contract. Returns False if it wasn't loaded."""
        with self._lock:
            if skill_id not in self._boxes:
                return False
            del self._boxes[skill_id]
            self._rebuild()
            return True

    def load_box(self, skill_dir: Path | str) -> ActionBox:
        """
        Load the contract of one skill directory.

        Raises:
            ContractNotFoundError, ContractParseError, ContractValidationError
        """
        box = load_action_box(skill_dir)
        self.add_box(box)
        logger.info("Loaded contract for %s", box.skill_id)
        return box

    def load_boxes(self, skill_dirs: Iterable[Path | str]) -> list[ActionBox]:
        """
        Load contracts from several skill directories with a single rebuild.

        Directories without a valid ACTIONBOX.md are skipped with a warning.
        """
        loaded: list[ActionBox] = []
        for skill_dir in skill_dirs:
            try:
                loaded.append(load_action_box(skill_dir))
            except ContractError as e:
                logger.warning("Skipping %s: %s", Path(skill_dir).name, e.message)

        with self._lock:
            for box in loaded:
                self._boxes[box.skill_id] = box
            self._rebuild()

        logger.info("Loaded %d contract(s)", len(loaded))
        return loaded

    def load_skills_dir(self, skills_dir: Path | str) -> list[ActionBox]:
        """Discover skill directories under a root and load their contracts."""
        return self.load_boxes(discover_skill_dirs(skills_dir))

    # =========================================================================
    # Checks
    # =========================================================================

    def check(self, tool_name: str, params: dict[str, Any] | None = None) -> list[Violation]:
        """
        Check one tool call against the current policy.

        With a classifier configured, an unclaimed tool is classified against
        the capability lists (once per tool name) before evaluation. A
        classifier failure leaves the tool unclassified, which reports it as
        unlisted.
        """
        params = params or {}
        with self._lock:
            policy = self._policy

        if self._needs_classification(tool_name, policy):
            self._classify(tool_name, params, policy)

        return match_tool_call(
            tool_name,
            params,
            policy,
            capability_cache=self._cache,
            extractor=self._extractor,
        )

    def _needs_classification(self, tool_name: str, policy: GlobalPolicy) -> bool:
        return (
            self._classifier is not None
            and policy.has_capabilities
            and tool_name not in policy.global_denied_tools
            and not attribute_tool_to_skills(tool_name, policy)
            and not self._cache.has(tool_name)
        )

    def _classify(self, tool_name: str, params: dict[str, Any], policy: GlobalPolicy) -> None:
        classifier = self._classifier
        if classifier is None:
            return
        try:
            classification = classifier.classify(
                tool_name,
                params,
                policy.all_allowed_capabilities,
                policy.all_denied_capabilities,
            )
        except ClassifierError as e:
            logger.warning("Could not classify %s: %s", tool_name, e.message)
            return

        with self._lock:
            # drop the verdict if the policy was rebuilt meanwhile
            if self._policy is policy:
                self._cache.set(tool_name, classification)

    def check_tool_call_limit(self, skill_id: str, call_count: int) -> list[Violation]:
        """Report a skill that exceeded its behavior.maxToolCalls budget."""
        box = self.get_box(skill_id)
        if box is None or box.behavior.max_tool_calls is None:
            return []
        limit = box.behavior.max_tool_calls
        if call_count <= limit:
            return []
        return [
            Violation(
                type=ViolationType.TOOL_CALL_LIMIT_EXCEEDED,
                severity=Severity.MEDIUM,
                skill_id=skill_id,
                tool_name="*",
                message=f"Skill made {call_count} tool calls, exceeding limit of {limit}",
                rule=f"behavior.maxToolCalls: {limit}",
                details={"call_count": call_count, "limit": limit},
            )
        ]

    def check_run(self, skill_id: str, tool_calls: Iterable[ToolCall]) -> list[Violation]:
        """Check every call of a finished agent run, then its call count."""
        calls = list(tool_calls)
        violations: list[Violation] = []
        for call in calls:
            violations.extend(self.check(call.tool_name, call.params))
        violations.extend(self.check_tool_call_limit(skill_id, len(calls)))
        return violations

    def should_block(self, violations: list[Violation]) -> bool:
        return self._mode == EnforcementMode.ENFORCE and bool(violations)

    def block_reason(self, violations: list[Violation]) -> str | None:
        if not violations:
            return None
        return f"{BLOCK_PREFIX} {violations[0].message}"

    def check_drift(self, skill_dir: Path | str) -> DriftStatus | None:
        return check_drift(skill_dir)

    def close(self) -> None:
        if self._classifier is not None:
            self._classifier.close()
