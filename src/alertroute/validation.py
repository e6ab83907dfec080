"""Rule admission: reject invalid Alert specs at write time.

Everything that can fail on a pattern or a field happens here, once per
spec generation, so the event hot path never compiles or raises.
"""

from __future__ import annotations

import regex

from alertroute.types import AlertRule, AlertSpec, Exact, Severity

MAX_SUMMARY_LENGTH = 255


class AlertValidationError(ValueError):
    """The rule spec was rejected. Carries every problem found."""

    def __init__(self, rule: str, problems: list[str]) -> None:
        self.rule = rule
        self.problems = list(problems)
        super().__init__(f"alert {rule} rejected: " + "; ".join(self.problems))


def compile_exclusion(pattern: str) -> regex.Pattern[str]:
    """Compile one exclusion pattern.

    Searches against it are time-bounded in matching.is_excluded, so
    backtracking-heavy patterns are admitted.
    """
    try:
        return regex.compile(pattern)
    except regex.error as err:
        raise ValueError(f"exclusion pattern {pattern!r} is invalid: {err}") from err


def validate_spec(spec: AlertSpec, rule: str = "<unnamed>") -> tuple[regex.Pattern[str], ...]:
    """Check a spec and return its compiled exclusion patterns.

    Raises AlertValidationError listing all problems.
    """
    problems: list[str] = []

    if not spec.provider_ref.name.strip():
        problems.append("providerRef.name is required")

    if spec.event_severity not in {s.value for s in Severity}:
        problems.append(
            f"eventSeverity {spec.event_severity!r} must be one of "
            f"{[s.value for s in Severity]}"
        )

    if not spec.event_sources:
        problems.append("eventSources must not be empty")
    for i, selector in enumerate(spec.event_sources):
        if not selector.kind:
            problems.append(f"eventSources[{i}].kind is required")
        if isinstance(selector.name, Exact) and not selector.name.value:
            problems.append(f"eventSources[{i}].name is required (use '*' for all)")
        if isinstance(selector.namespace, Exact) and not selector.namespace.value:
            problems.append(f"eventSources[{i}].namespace must not be empty")

    compiled: list[regex.Pattern[str]] = []
    for i, pattern in enumerate(spec.exclusion_list):
        try:
            compiled.append(compile_exclusion(pattern))
        except ValueError as err:
            problems.append(f"exclusionList[{i}]: {err}")

    if len(spec.summary) > MAX_SUMMARY_LENGTH:
        problems.append(
            f"summary is {len(spec.summary)} characters, max {MAX_SUMMARY_LENGTH}"
        )

    if problems:
        raise AlertValidationError(rule, problems)
    return tuple(compiled)


def admit(rule: AlertRule) -> AlertRule:
    """Validate the rule and attach its compiled exclusion patterns.

    A rejected rule is left non-matching until a corrected spec is admitted.
    """
    try:
        rule.compiled_exclusions = validate_spec(rule.spec, rule.key)
    except AlertValidationError:
        rule.compiled_exclusions = ()
        rule.accepted = False
        raise
    rule.accepted = True
    return rule
