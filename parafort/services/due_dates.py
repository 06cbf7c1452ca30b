# parafort/services/due_dates.py
"""
Pure date arithmetic for compliance deadlines.

Nothing here touches the database or the clock: callers pass `now` and the
reference year explicitly, which keeps every rule unit-testable.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Union

from parafort.schemas.compliance_template import ComplianceTemplate, DueDateRule, ReliefWindow

DateLike = Union[date, datetime]

# Interval -> number of months added by a roll-forward
INTERVAL_MONTHS: Dict[str, int] = {
    "monthly": 1,
    "quarterly": 3,
    "annual": 12,
    "biennial": 24,
}


# ---- Calendar helpers --------------------------------------------------------
def as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def safe_date(year: int, month: int, day: int) -> date:
    """date() that clamps the day to the end of the month (Feb 30 -> Feb 28/29)."""
    return date(year, month, min(day, last_day_of_month(year, month)))


def add_months(d: date, months: int) -> date:
    years, month_index = divmod(d.month - 1 + months, 12)
    return safe_date(d.year + years, month_index + 1, d.day)


def add_years(d: date, years: int) -> date:
    # Feb 29 + 1y -> Feb 28
    return add_months(d, 12 * years)


def add_interval(d: date, interval: str) -> date:
    try:
        return add_months(d, INTERVAL_MONTHS[interval])
    except KeyError:
        raise ValueError(f"Unsupported recurring interval: {interval!r}") from None


def reminder_dates(due: date, lead_times: Iterable[int]) -> List[date]:
    """Fire dates `due - n days`, in lead-time order. Past dates are kept."""
    return [due - timedelta(days=int(n)) for n in lead_times]


def days_until(due: date, now: DateLike) -> int:
    return (due - as_date(now)).days


def urgency_tier(days_until_due: int, priority: Optional[str]) -> str:
    """
    Message tone for a reminder. Never decides whether to send.
      <=1 day             -> urgent
      <=7 days  and high  -> high
      <=14 days and high  -> medium
      <=30 days           -> low
      otherwise           -> info
    """
    high = (priority or "").lower() == "high"
    if days_until_due <= 1:
        return "urgent"
    if days_until_due <= 7 and high:
        return "high"
    if days_until_due <= 14 and high:
        return "medium"
    if days_until_due <= 30:
        return "low"
    return "info"


def dashboard_urgency(days_until_due: int) -> str:
    if days_until_due <= 7:
        return "high"
    if days_until_due <= 14:
        return "medium"
    return "low"


def relief_deadline(start: date, window: ReliefWindow) -> date:
    """Late-filing relief cut-off, e.g. effective date + 3 years and 75 days."""
    d = add_months(start, 12 * window.years + window.months)
    return d + timedelta(days=window.days)


# ---- Rule evaluators ---------------------------------------------------------
def _fixed_dates(rule: DueDateRule, formation: date, year: int) -> List[date]:
    return [safe_date(year + fd.year_offset, fd.month, fd.day) for fd in rule.dates]


def _anniversary_month_end(rule: DueDateRule, formation: date, year: int) -> List[date]:
    return [date(year, formation.month, last_day_of_month(year, formation.month))]


def _anniversary_month_start(rule: DueDateRule, formation: date, year: int) -> List[date]:
    out = [date(year, formation.month, 1)]
    if rule.repeat_years:
        out.append(date(year + rule.repeat_years, formation.month, 1))
    return out


def _formation_offset_or_fixed(rule: DueDateRule, formation: date, year: int) -> List[date]:
    # deadline extension: the later of the two candidates wins
    return [max(formation + timedelta(days=rule.offset_days), rule.not_before)]


def _formation_anniversary(rule: DueDateRule, formation: date, year: int) -> List[date]:
    return [add_years(formation, rule.years)]


RULE_EVALUATORS: Dict[str, Callable[[DueDateRule, date, int], List[date]]] = {
    "fixed_dates": _fixed_dates,
    "anniversary_month_end": _anniversary_month_end,
    "anniversary_month_start": _anniversary_month_start,
    "formation_offset_or_fixed": _formation_offset_or_fixed,
    "formation_anniversary": _formation_anniversary,
}


def calculate_due_dates(
    template: ComplianceTemplate,
    formation_date: DateLike,
    reference_year: int,
    *,
    now: DateLike,
    rule: Optional[DueDateRule] = None,
) -> List[date]:
    """
    Concrete due dates for one template and one entity.

    `rule` is the entry resolved from the catalogue's rule table for this
    template; without one the fallback is formation date + 1 year.
    Only dates strictly after `now` are returned (sorted, unique).
    """
    formation = as_date(formation_date)
    if rule is None:
        candidates = [add_years(formation, 1)]
    else:
        if rule.event_type != template.event_type:
            raise ValueError(
                f"rule for '{rule.event_type}' applied to template '{template.event_type}'"
            )
        candidates = RULE_EVALUATORS[rule.kind](rule, formation, reference_year)

    today = as_date(now)
    return sorted({d for d in candidates if d > today})
