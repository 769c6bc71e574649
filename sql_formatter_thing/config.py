from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from .types import Severity, SqlStyleError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAMES = (".sqlstyle.yaml", ".sqlstyle.yml", ".sqlstyle.json")

_ENTRY_KEYS = {"enabled", "severity", "parameters"}


class ConfigError(SqlStyleError, ValueError):
    """Invalid configuration; stops the run before any file is read."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(f"{key}: {message}" if key else message)
        self.message = message
        self.key = key


@dataclass(frozen=True)
class RuleConfig:
    enabled: bool | None = None
    severity: str | None = None
    parameters: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Configuration:
    rules: Mapping[str, RuleConfig] = field(default_factory=dict)
    path: str | None = None
    # Whether rules the configuration does not mention run.
    default_enabled: bool = True

    @classmethod
    def only(cls, rule_ids: Iterable[str]) -> "Configuration":
        return cls(rules={rid: RuleConfig(enabled=True) for rid in rule_ids}, default_enabled=False)

    def rule(self, rule_id: str) -> RuleConfig:
        return self.rules.get(rule_id, RuleConfig())

    def is_enabled(self, rule_id: str) -> bool:
        enabled = self.rule(rule_id).enabled
        return self.default_enabled if enabled is None else enabled

    def with_overrides(
        self,
        *,
        select: Iterable[str] | None = None,
        ignore: Iterable[str] | None = None,
    ) -> "Configuration":
        """--select keeps only the named rules; --ignore then switches rules off."""
        rules = dict(self.rules)
        default_enabled = self.default_enabled
        if select is not None:
            chosen = set(select)
            default_enabled = False
            for rid in set(rules) - chosen:
                rules[rid] = replace(rules[rid], enabled=False)
            for rid in chosen:
                rules[rid] = replace(rules.get(rid, RuleConfig()), enabled=True)
        for rid in ignore or ():
            rules[rid] = replace(rules.get(rid, RuleConfig()), enabled=False)
        return replace(self, rules=rules, default_enabled=default_enabled)


def _expect(d: Mapping[str, Any], key: str, typ: type, where: str) -> Any:
    v = d[key]
    if not isinstance(v, typ) or (typ is not bool and isinstance(v, bool)):
        raise ConfigError(f"must be {typ.__name__}", key=f"{where}.{key}")
    return v


def parse_config(raw: Any, path: str | None = None) -> Configuration:
    """Validate the structure of an already-parsed configuration document."""
    if raw is None:
        return Configuration(path=path)
    if not isinstance(raw, dict):
        raise ConfigError("configuration must be a mapping of rule id to settings")

    rules: dict[str, RuleConfig] = {}
    for key, entry in raw.items():
        if not isinstance(key, str):
            raise ConfigError("rule ids must be strings", key=str(key))
        rid = key.strip().upper()
        if rid in rules:
            raise ConfigError("rule configured more than once", key=rid)
        if entry is None:
            rules[rid] = RuleConfig()
            continue
        if not isinstance(entry, dict):
            raise ConfigError("rule settings must be a mapping", key=rid)
        unknown = sorted(set(entry) - _ENTRY_KEYS)
        if unknown:
            raise ConfigError(f"unknown setting(s) {', '.join(map(str, unknown))}", key=rid)

        enabled = _expect(entry, "enabled", bool, rid) if "enabled" in entry else None
        severity = None
        if "severity" in entry:
            sev = _expect(entry, "severity", str, rid)
            try:
                severity = Severity.parse(sev).value
            except ValueError:
                raise ConfigError("must be one of error|warning", key=f"{rid}.severity") from None
        params = _expect(entry, "parameters", dict, rid) if "parameters" in entry else {}
        for pk in params:
            if not isinstance(pk, str):
                raise ConfigError("parameter names must be strings", key=f"{rid}.parameters")
        rules[rid] = RuleConfig(enabled=enabled, severity=severity, parameters=dict(params))

    return Configuration(rules=rules, path=path)


def load_config(path: Path) -> Configuration:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read configuration file: {e}", key=str(path)) from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"malformed configuration file: {e}", key=str(path)) from e
    cfg = parse_config(raw, path=str(path))
    logger.debug("loaded configuration %s (%d rule entries)", path, len(cfg.rules))
    return cfg


def find_config(directory: Path) -> Path | None:
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None
