"""Content guard agent: regex policy checks over upstream text."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from agentflow.agents.base import AgentContext, first_dependency_text


@dataclass(frozen=True, slots=True)
class GuardRule:
    pattern: str
    message: str


DEFAULT_FORBIDDEN_RULES: tuple[GuardRule, ...] = (
    GuardRule(pattern=r"(?i)\bspam\b", message="Contains spam wording"),
    GuardRule(pattern=r"(?i)\bguaranteed\s+results?\b", message="Makes guaranteed-result claims"),
    GuardRule(pattern=r"(?i)\bclick\s+here\b", message="Uses click-bait call to action"),
)
DEFAULT_REQUIRED_RULES: tuple[GuardRule, ...] = ()


class GuardAgent:
    """Report forbidden matches and missing required patterns.

    Rules can be overridden per node through ``forbidden``/``required`` lists of
    ``{"pattern", "message"}`` objects in the node input.
    """

    def __init__(
        self,
        *,
        forbidden: Iterable[GuardRule] = DEFAULT_FORBIDDEN_RULES,
        required: Iterable[GuardRule] = DEFAULT_REQUIRED_RULES,
    ) -> None:
        self.forbidden = tuple(forbidden)
        self.required = tuple(required)

    async def execute(self, payload: dict[str, Any], context: AgentContext) -> dict[str, Any]:
        text = first_dependency_text(payload)
        if text is None:
            text = str(payload.get("text", ""))

        forbidden = _rules_from_payload(payload.get("forbidden")) or self.forbidden
        required = _rules_from_payload(payload.get("required")) or self.required

        issues = [rule.message for rule in forbidden if re.search(rule.pattern, text)]
        issues.extend(rule.message for rule in required if not re.search(rule.pattern, text))

        passed = not issues
        context.logger.info("Validation complete", {"passed": passed, "issues": issues})
        return {
            "passed": passed,
            "issues": issues,
            "suggestions": [f"Consider revising content to address: {issue}" for issue in issues],
        }


def _rules_from_payload(raw: Any) -> tuple[GuardRule, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        GuardRule(pattern=str(entry["pattern"]), message=str(entry.get("message", entry["pattern"])))
        for entry in raw
        if isinstance(entry, Mapping) and "pattern" in entry
    )
