from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from gamenight.core.events import (
    VALIDATED_KINDS,
    CustomValidation,
    EventDefinition,
    ExactMatch,
    RegexMatch,
)

logger = logging.getLogger(__name__)

CORRECT = "correct"
WRONG = "wrong"


def answer_text(answer: Any) -> str:
    """Stable text form of a submitted answer.

    Strings pass through untouched; anything else is rendered as compact JSON with
    sorted keys so equal answers always produce the same text.
    """

    if isinstance(answer, str):
        return answer
    return json.dumps(answer, sort_keys=True, separators=(",", ":"))


def normalize_answer(answer: Any) -> str:
    return answer_text(answer).strip().lower()


def _check_exact(normalized: str, rule: ExactMatch) -> bool:
    return any(c.strip().lower() == normalized for c in rule.correct_answers)


def _check_regex(normalized: str, rule: RegexMatch) -> bool:
    return re.search(rule.pattern, normalized) is not None


def _check_custom(normalized: str, rule: CustomValidation) -> bool:
    logger.warning("Custom validator %r is not implemented; accepting answer", rule.name)
    return True


_RULE_CHECKS: dict[str, Callable[[str, Any], bool]] = {
    "exact": _check_exact,
    "regex": _check_regex,
    "custom": _check_custom,
}


def validate_answer(answer: Any, event: EventDefinition) -> bool:
    if event.kind not in VALIDATED_KINDS:
        return True

    rule = event.validation
    if rule is None:
        return True

    return _RULE_CHECKS[rule.type](normalize_answer(answer), rule)


def evaluate(answer: Any, event: EventDefinition) -> str:
    """Return the trigger key used to pick branch events for this answer.

    With a validation rule the key is always "correct" or "wrong". Without one the
    answer text itself is the key, so configs can branch on literal answers.
    """

    if event.validation is not None:
        return CORRECT if validate_answer(answer, event) else WRONG
    return answer_text(answer)


def is_correct(answer: Any, event: EventDefinition) -> bool | None:
    """`None` when the event has no rule, so there is nothing to be correct about."""

    if event.validation is None:
        return None
    return validate_answer(answer, event)
