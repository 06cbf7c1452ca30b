# parafort/schemas/compliance_template.py
from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, conint, model_validator

Priority = Literal["high", "medium", "low"]
RecurringInterval = Literal["monthly", "quarterly", "annual", "biennial"]
RuleKind = Literal[
    "fixed_dates",
    "anniversary_month_end",
    "anniversary_month_start",
    "formation_offset_or_fixed",
    "formation_anniversary",
]

WILDCARD = "*"


class ComplianceTemplate(BaseModel):
    """Static description of one compliance obligation (not persisted per tenant)."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(..., min_length=1, max_length=64)
    title: str
    description: str = ""
    category: str
    priority: Priority = "medium"
    is_recurring: bool = False
    recurring_interval: Optional[RecurringInterval] = None
    # None = every entity type
    applicable_entity_types: Optional[Set[str]] = None
    # "*" = every state
    applicable_states: Union[Set[str], Literal["*"]] = WILDCARD
    lead_times: List[conint(ge=0)] = Field(default_factory=list)

    @model_validator(mode="after")
    def _recurring_needs_interval(self) -> "ComplianceTemplate":
        if self.is_recurring and self.recurring_interval is None:
            raise ValueError(f"template '{self.event_type}' is recurring but has no recurring_interval")
        return self

    def applies_to(self, entity_type: Optional[str], state: Optional[str]) -> bool:
        if self.applicable_entity_types is not None and entity_type not in self.applicable_entity_types:
            return False
        if self.applicable_states != WILDCARD and state not in self.applicable_states:
            return False
        return True


class FixedDate(BaseModel):
    model_config = ConfigDict(frozen=True)

    month: conint(ge=1, le=12)
    day: conint(ge=1, le=31)
    year_offset: int = 0


class DueDateRule(BaseModel):
    """
    One row of the (state, entity_type, event_type) -> rule table.
    Parameters are interpreted according to `kind`.
    """

    model_config = ConfigDict(frozen=True)

    event_type: str
    state: str = WILDCARD
    entity_type: str = WILDCARD
    kind: RuleKind

    dates: List[FixedDate] = Field(default_factory=list)       # fixed_dates
    repeat_years: Optional[conint(ge=1)] = None                 # anniversary_month_start
    offset_days: Optional[conint(ge=0)] = None                  # formation_offset_or_fixed
    not_before: Optional[date] = None                           # formation_offset_or_fixed
    years: conint(ge=1) = 1                                     # formation_anniversary

    @model_validator(mode="after")
    def _params_match_kind(self) -> "DueDateRule":
        if self.kind == "fixed_dates" and not self.dates:
            raise ValueError(f"rule for '{self.event_type}' needs at least one fixed date")
        if self.kind == "formation_offset_or_fixed" and (self.offset_days is None or self.not_before is None):
            raise ValueError(f"rule for '{self.event_type}' needs offset_days and not_before")
        return self


class ReliefWindow(BaseModel):
    """Regulatory late-filing relief constant, e.g. '3 years and 75 days'."""

    model_config = ConfigDict(frozen=True)

    years: conint(ge=0) = 0
    months: conint(ge=0) = 0
    days: conint(ge=0) = 0
    description: str = ""


class RuleCatalogFile(BaseModel):
    """On-disk shape of compliance_rules.json."""

    version: int = 1
    default_lead_times: List[conint(ge=0)] = Field(default_factory=lambda: [90, 30, 14, 7, 1])
    templates: List[ComplianceTemplate]
    rules: List[DueDateRule] = Field(default_factory=list)
    relief_windows: Dict[str, ReliefWindow] = Field(default_factory=dict)
