# parafort/services/compliance_catalog.py
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from parafort.core.config import get_settings
from parafort.core.exceptions import ConfigurationError
from parafort.schemas.compliance_template import (
    WILDCARD,
    ComplianceTemplate,
    DueDateRule,
    ReliefWindow,
    RuleCatalogFile,
)

log = logging.getLogger("parafort.catalog")

RuleKey = Tuple[str, str, str]  # (state, entity_type, event_type)


class ComplianceCatalog:
    """
    Template catalogue plus the (state, entity_type, event_type) -> rule table.

    Loaded once from JSON; read-only afterwards.
    """

    def __init__(self, data: RuleCatalogFile):
        self.version = data.version
        self.default_lead_times: List[int] = list(data.default_lead_times)
        self.relief_windows: Dict[str, ReliefWindow] = dict(data.relief_windows)

        self._templates: Dict[str, ComplianceTemplate] = {}
        for tpl in data.templates:
            if tpl.event_type in self._templates:
                raise ConfigurationError(f"duplicate template for event_type '{tpl.event_type}'")
            self._templates[tpl.event_type] = tpl

        self.rules: Dict[RuleKey, DueDateRule] = {}
        for rule in data.rules:
            key = (rule.state, rule.entity_type, rule.event_type)
            if key in self.rules:
                raise ConfigurationError(f"duplicate due-date rule for {key}")
            self.rules[key] = rule

    # ---- templates ---------------------------------------------------------
    @property
    def templates(self) -> List[ComplianceTemplate]:
        return list(self._templates.values())

    def template(self, event_type: str) -> Optional[ComplianceTemplate]:
        return self._templates.get(event_type)

    def applicable_templates(self, entity_type: Optional[str], state: Optional[str]) -> List[ComplianceTemplate]:
        out = []
        for tpl in self._templates.values():
            if tpl.applies_to(entity_type, state):
                out.append(tpl)
            else:
                log.debug(
                    "template %s skipped for entity_type=%s state=%s",
                    tpl.event_type, entity_type, state,
                )
        return out

    def lead_times_for(self, event_type: str) -> List[int]:
        tpl = self._templates.get(event_type)
        if tpl is not None and tpl.lead_times:
            return list(tpl.lead_times)
        return list(self.default_lead_times)

    # ---- rules -------------------------------------------------------------
    def rule_for(self, event_type: str, state: Optional[str], entity_type: Optional[str]) -> Optional[DueDateRule]:
        """Most specific rule wins: exact state beats '*', then exact entity type beats '*'."""
        candidates = (
            (state or WILDCARD, entity_type or WILDCARD),
            (state or WILDCARD, WILDCARD),
            (WILDCARD, entity_type or WILDCARD),
            (WILDCARD, WILDCARD),
        )
        for st, et in candidates:
            rule = self.rules.get((st, et, event_type))
            if rule is not None:
                return rule
        return None

    def relief_window(self, name: str) -> ReliefWindow:
        try:
            return self.relief_windows[name]
        except KeyError:
            raise ConfigurationError(f"unknown relief window '{name}'") from None


def parse_catalog(raw: Union[str, bytes, dict]) -> ComplianceCatalog:
    try:
        if isinstance(raw, dict):
            data = RuleCatalogFile.model_validate(raw)
        else:
            data = RuleCatalogFile.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError("invalid compliance rule catalogue", details=exc.errors()) from exc
    return ComplianceCatalog(data)


def load_catalog(path: Union[str, Path]) -> ComplianceCatalog:
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read compliance rules from {p}") from exc
    catalog = parse_catalog(raw)
    log.info(
        "loaded compliance catalogue v%s from %s (%d templates, %d rules)",
        catalog.version, p, len(catalog.templates), len(catalog.rules),
    )
    return catalog


@lru_cache
def get_catalog() -> ComplianceCatalog:
    return load_catalog(get_settings().rules_path)
