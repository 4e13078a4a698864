"""
Compiles a search request into a staged, storage-independent QueryPlan.

Predicates are typed variants tagged with the phase they run in:

* PRE_JOIN  - identity columns only (gender, names, recency, age window, blocks)
* POST_JOIN - needs the personal/profession joins (height, religion, caste, city, profession)
* PRIVACY   - symmetric disclosure gate on the sensitive health attribute

The executor in repo.py turns predicates into SQL; every predicate can also be
evaluated against an already assembled CandidateView via `matches`.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from ..config import DEFAULT_AGE_FROM, DEFAULT_AGE_TO, NEW_PROFILE_WINDOWS_DAYS, SEARCH_MAX_LIMIT
from .normalize import Disclosure, as_date, coerce_height, disclosure_state, years_before
from .views import CandidateView, SeekerContext


class Phase(str, enum.Enum):
    PRE_JOIN = "pre_join"
    POST_JOIN = "post_join"
    PRIVACY = "privacy"


# field name -> (CandidateView group attribute, attribute on that group)
FIELDS: dict[str, tuple[str, str]] = {
    "user_id": ("identity", "user_id"),
    "gender": ("identity", "gender"),
    "first_name": ("identity", "first_name"),
    "middle_name": ("identity", "middle_name"),
    "last_name": ("identity", "last_name"),
    "custom_id": ("identity", "custom_id"),
    "date_of_birth": ("identity", "date_of_birth"),
    "created_at": ("identity", "created_at"),
    "is_active": ("identity", "is_active"),
    "height": ("personal", "height"),
    "religion": ("personal", "religion"),
    "sub_caste": ("personal", "sub_caste"),
    "city": ("personal", "city"),
    "occupation": ("profession", "occupation"),
    "organization": ("profession", "organization"),
    "hiv_status": ("health", "hiv_status"),
}


def field_value(view: CandidateView, name: str) -> Any:
    group, attr = FIELDS[name]
    if name == "user_id":
        return view.user_id
    record = getattr(view, group)
    return getattr(record, attr) if record is not None else None


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any
    phase: Phase = Phase.PRE_JOIN

    def matches(self, view: CandidateView) -> bool:
        return field_value(view, self.field) == self.value


@dataclass(frozen=True)
class Substring:
    """Case-insensitive literal substring on any of `fields`."""

    fields: tuple[str, ...]
    needle: str
    phase: Phase = Phase.POST_JOIN

    def matches(self, view: CandidateView) -> bool:
        needle = self.needle.lower()
        for name in self.fields:
            value = field_value(view, name)
            if value is not None and needle in str(value).lower():
                return True
        return False


@dataclass(frozen=True)
class ExactIgnoreCase:
    field: str
    value: str
    phase: Phase = Phase.PRE_JOIN

    def matches(self, view: CandidateView) -> bool:
        value = field_value(view, self.field)
        return value is not None and str(value).lower() == self.value.lower()


@dataclass(frozen=True)
class AtLeast:
    field: str
    bound: datetime
    phase: Phase = Phase.PRE_JOIN

    def matches(self, view: CandidateView) -> bool:
        value = field_value(view, self.field)
        if value is None:
            return False
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value >= self.bound


@dataclass(frozen=True)
class DateWindow:
    """Inclusive on both ends."""

    field: str
    start: date
    end: date
    phase: Phase = Phase.PRE_JOIN

    def matches(self, view: CandidateView) -> bool:
        value = field_value(view, self.field)
        return value is not None and self.start <= as_date(value) <= self.end


@dataclass(frozen=True)
class NumericRange:
    """Absent or non-numeric values compare as `fallback`."""

    field: str
    low: float | None
    high: float | None
    fallback: float = 0.0
    phase: Phase = Phase.POST_JOIN

    def matches(self, view: CandidateView) -> bool:
        raw = field_value(view, self.field)
        value = coerce_height(raw) if raw is not None else self.fallback
        if self.low is not None and value < self.low:
            return False
        if self.high is not None and value > self.high:
            return False
        return True


@dataclass(frozen=True)
class NotIn:
    field: str
    values: frozenset[str]
    label: str = ""
    phase: Phase = Phase.PRE_JOIN

    def matches(self, view: CandidateView) -> bool:
        return str(field_value(view, self.field)) not in self.values


@dataclass(frozen=True)
class DisclosureIs:
    field: str
    state: Disclosure
    phase: Phase = Phase.PRIVACY

    def matches(self, view: CandidateView) -> bool:
        return disclosure_state(field_value(view, self.field)) is self.state


Predicate = Equals | Substring | ExactIgnoreCase | AtLeast | DateWindow | NumericRange | NotIn | DisclosureIs


@dataclass(frozen=True)
class SortKey:
    field: str
    descending: bool = False


TIE_BREAK = SortKey("user_id", descending=False)


@dataclass(frozen=True)
class QueryPlan:
    predicates: tuple[Predicate, ...] = ()
    order: tuple[SortKey, ...] = (SortKey("created_at", descending=True), TIE_BREAK)
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def phase(self, phase: Phase) -> tuple[Predicate, ...]:
        return tuple(p for p in self.predicates if p.phase is phase)

    def only(self, *phases: Phase) -> "QueryPlan":
        return QueryPlan(
            predicates=tuple(p for p in self.predicates if p.phase in phases),
            order=self.order,
            evaluated_at=self.evaluated_at,
        )

    def matches(self, view: CandidateView, phases: Iterable[Phase] | None = None) -> bool:
        wanted = set(phases) if phases is not None else set(Phase)
        return all(p.matches(view) for p in self.predicates if p.phase in wanted)


def opposite_gender(gender: str | None) -> str | None:
    g = (gender or "").strip().lower()
    if g == "male":
        return "female"
    if g == "female":
        return "male"
    return None


def paging(page: int | None, limit: int | None, default_limit: int = 20) -> tuple[int, int, int]:
    page = max(1, int(page or 1))
    limit = max(1, min(SEARCH_MAX_LIMIT, int(limit or default_limit)))
    return page, limit, (page - 1) * limit


def privacy_predicates(seeker: SeekerContext | None) -> tuple[Predicate, ...]:
    if seeker is None or seeker.disclosure is Disclosure.UNKNOWN:
        return ()
    return (DisclosureIs("hiv_status", seeker.disclosure),)


def block_predicates(seeker: SeekerContext | None) -> tuple[Predicate, ...]:
    if seeker is None:
        return ()
    preds: list[Predicate] = [NotIn("user_id", frozenset({seeker.user_id}), label="self")]
    if seeker.blocked_ids:
        preds.append(NotIn("user_id", seeker.blocked_ids, label="blocked_by_seeker"))
    if seeker.blocker_ids:
        preds.append(NotIn("user_id", seeker.blocker_ids, label="blocked_seeker"))
    return tuple(preds)


def _order_for(sort_by: str | None) -> tuple[SortKey, ...]:
    # "age" sorts by birth date descending, youngest first.
    if sort_by == "age":
        return (SortKey("date_of_birth", descending=True), TIE_BREAK)
    return (SortKey("created_at", descending=True), TIE_BREAK)


def compile_search(request: Any, seeker: SeekerContext | None = None, now: datetime | None = None) -> QueryPlan:
    """Build the staged plan for a search request.

    `request` is any object exposing the SearchFilters attributes; every one
    of them is optional.
    """
    now = now or datetime.now(timezone.utc)
    today = as_date(now)
    preds: list[Predicate] = [Equals("is_active", True)]

    gender = (getattr(request, "gender", None) or "").strip().lower() or None
    if gender is None and seeker is not None and seeker.view.identity is not None:
        gender = opposite_gender(seeker.view.identity.gender)
    if gender:
        preds.append(Equals("gender", gender))

    name = (getattr(request, "name", None) or "").strip()
    if name:
        preds.append(Substring(("first_name", "middle_name", "last_name"), name, phase=Phase.PRE_JOIN))

    custom_id = (getattr(request, "custom_id", None) or "").strip()
    if custom_id:
        preds.append(ExactIgnoreCase("custom_id", custom_id))

    days = NEW_PROFILE_WINDOWS_DAYS.get(getattr(request, "new_profile", None) or "all", 0)
    if days > 0:
        preds.append(AtLeast("created_at", now - timedelta(days=days)))

    age_from = getattr(request, "age_from", None)
    age_to = getattr(request, "age_to", None)
    if age_from is not None or age_to is not None:
        age_from = DEFAULT_AGE_FROM if age_from is None else age_from
        age_to = DEFAULT_AGE_TO if age_to is None else age_to
        preds.append(DateWindow("date_of_birth", years_before(today, age_to), years_before(today, age_from)))

    preds.extend(block_predicates(seeker))

    height_from = getattr(request, "height_from", None)
    height_to = getattr(request, "height_to", None)
    if height_from is not None or height_to is not None:
        preds.append(NumericRange("height", height_from, height_to))

    for attr, column in (("religion", "religion"), ("caste", "sub_caste"), ("city", "city")):
        value = (getattr(request, attr, None) or "").strip()
        if value:
            preds.append(Substring((column,), value))

    profession = (getattr(request, "profession", None) or "").strip()
    if profession:
        preds.append(Substring(("occupation", "organization"), profession))

    preds.extend(privacy_predicates(seeker))

    return QueryPlan(predicates=tuple(preds), order=_order_for(getattr(request, "sort_by", None)), evaluated_at=now)
