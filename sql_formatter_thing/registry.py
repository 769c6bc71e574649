"""
Rule registry.

Rules are registered once, in declaration order, and resolved against a
Configuration at the start of a run. The resolved list is fixed for the rest
of the run, so identical input and configuration always produce the same
output.

Usage:
    registry = default_registry()
    active = registry.resolve(load_config(Path(".sqlstyle.yaml")))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Literal, Mapping

from .config import ConfigError, Configuration
from .token_context import TokenStream
from .types import Finding, Severity

logger = logging.getLogger(__name__)

Category = Literal["naming", "whitespace", "keyword-case", "structure"]
CheckFn = Callable[[TokenStream, Mapping[str, Any]], Iterable[Finding]]


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    description: str
    category: Category
    severity: Severity
    check: CheckFn
    parameters: Mapping[str, Any] = field(default_factory=dict)
    choices: Mapping[str, tuple[Any, ...]] = field(default_factory=dict)
    # Extra parameter checks; raises ConfigError.
    validate: Callable[[Mapping[str, Any]], None] | None = None


@dataclass(frozen=True)
class ActiveRule:
    """A rule with the severity and parameters one run uses."""

    rule: Rule
    severity: Severity
    parameters: Mapping[str, Any]

    @property
    def id(self) -> str:
        return self.rule.id

    def run(self, stream: TokenStream) -> list[Finding]:
        return list(self.rule.check(stream, self.parameters))


class RuleRegistry:
    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for r in rules:
            self.register(r)

    def register(self, rule: Rule) -> Rule:
        if rule.id in self._rules:
            raise ValueError(f"Rule {rule.id} is already registered")
        self._rules[rule.id] = rule
        return rule

    def rule(
        self,
        rule_id: str,
        *,
        name: str,
        category: Category,
        severity: Severity,
        description: str,
        choices: Mapping[str, tuple[Any, ...]] | None = None,
        validate: Callable[[Mapping[str, Any]], None] | None = None,
        **parameters: Any,
    ) -> Callable[[CheckFn], CheckFn]:
        """Decorator registering a check function as a rule."""

        def deco(fn: CheckFn) -> CheckFn:
            self.register(
                Rule(
                    id=rule_id,
                    name=name,
                    description=description,
                    category=category,
                    severity=severity,
                    check=fn,
                    parameters=dict(parameters),
                    choices=dict(choices or {}),
                    validate=validate,
                )
            )
            return fn

        return deco

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def ids(self) -> list[str]:
        return list(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def resolve(self, configuration: Configuration) -> list[ActiveRule]:
        unknown = [rid for rid in configuration.rules if rid not in self._rules]
        if unknown:
            raise ConfigError("unknown rule id", key=unknown[0])

        active: list[ActiveRule] = []
        for r in self._rules.values():
            rc = configuration.rule(r.id)
            params = _merge_parameters(r, rc.parameters)
            if not configuration.is_enabled(r.id):
                continue
            severity = Severity.parse(rc.severity) if rc.severity else r.severity
            active.append(ActiveRule(rule=r, severity=severity, parameters=params))

        logger.debug("resolved %d active rule(s): %s", len(active), ", ".join(a.id for a in active))
        return active


def _merge_parameters(rule: Rule, overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(rule.parameters)
    for key, value in overrides.items():
        where = f"{rule.id}.parameters.{key}"
        if key not in rule.parameters:
            raise ConfigError("unknown parameter", key=where)
        merged[key] = _coerce(value, rule.parameters[key], where)
        allowed = rule.choices.get(key)
        if allowed is not None and isinstance(merged[key], str):
            merged[key] = merged[key].lower()
        if allowed is not None and merged[key] not in allowed:
            raise ConfigError(f"must be one of {'|'.join(map(str, allowed))}", key=where)
    if rule.validate is not None:
        rule.validate(merged)
    return merged


def _coerce(value: Any, default: Any, where: str) -> Any:
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigError("must be a boolean", key=where)
    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
            return value
        raise ConfigError("must be a non-negative integer", key=where)
    if isinstance(default, str):
        if isinstance(value, str):
            return value
        raise ConfigError("must be a string", key=where)
    if isinstance(default, tuple):
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return tuple(value)
        raise ConfigError("must be a list of strings", key=where)
    return value


def default_registry() -> RuleRegistry:
    """A fresh registry holding the built-in rules."""
    from .rules import BUILTIN_RULES

    return RuleRegistry(BUILTIN_RULES)
