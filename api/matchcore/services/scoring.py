"""
Compatibility scoring between a seeker's expectations and one candidate.

Every criterion yields a fraction in [0, 1] or None. None means the candidate
attribute is absent; it contributes nothing and is never read as
disagreement. The total is the sum of weight * fraction over the fixed weight
table in config.SCORE_WEIGHTS (sums to 100), so scores are comparable across
candidates and across runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Mapping

from ..config import (
    AGE_DISTANCE_PENALTY,
    COUNTRY_MATCH_FRACTION,
    EDUCATION_UNLISTED_FRACTION,
    SCORE_WEIGHTS,
)
from .normalize import (
    calculate_age,
    include_exclude_match,
    is_no_preference,
    split_include_exclude,
    to_str_list,
)
from .views import CandidateView, Expectations


@dataclass(frozen=True)
class ScoreDetail:
    score: float = 0.0
    reasons: tuple[str, ...] = ()
    breakdown: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "reasons", tuple(self.reasons))
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "reasons": list(self.reasons), "breakdown": dict(self.breakdown)}


NEUTRAL_SCORE = ScoreDetail()

# (fraction, reason); reason is None when the fraction earns no explanation.
CriterionResult = tuple[float, str | None] | None


def _age(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    ident = candidate.identity
    age = calculate_age(ident.date_of_birth, now) if ident else None
    if age is None:
        return None
    if expect.age_from is None and expect.age_to is None:
        return 1.0, "Age within preferred range"
    low = expect.age_from if expect.age_from is not None else 0
    high = expect.age_to if expect.age_to is not None else 200
    if low <= age <= high:
        return 1.0, "Age within preferred range"
    dist = min(abs(age - low), abs(age - high))
    fraction = max(0.0, 1.0 - dist * AGE_DISTANCE_PENALTY)
    return fraction, ("Age close to preferred range" if fraction > 0 else None)


def _community(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    personal = candidate.personal
    if personal is None or not personal.religion:
        return None
    values = [v for v in (personal.religion, personal.sub_caste) if v]
    if is_no_preference(expect.community) or include_exclude_match(expect.community, values):
        return 1.0, "Community preference matched"
    return 0.0, None


def _location(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    personal = candidate.personal
    state = personal.state if personal else None
    country = personal.country if personal else None
    if not state and not country:
        return None

    state_pref = not is_no_preference(expect.states)
    country_pref = not is_no_preference(expect.countries)
    if not state_pref and not country_pref:
        return 1.0, "Location preference matched"

    evaluated = False
    if state_pref and state:
        evaluated = True
        if include_exclude_match(expect.states, [state]):
            return 1.0, "Same state"
    if country_pref and country:
        evaluated = True
        if include_exclude_match(expect.countries, [country]):
            return COUNTRY_MATCH_FRACTION, "Same country"
    return (0.0, None) if evaluated else None


def _marital_status(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    status = candidate.personal.marital_status if candidate.personal else None
    if not status:
        return None
    if is_no_preference(expect.marital_status) or include_exclude_match(expect.marital_status, [status]):
        return 1.0, "Marital status match"
    return 0.0, None


def _education(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    level = candidate.education.highest_level if candidate.education else None
    if not level:
        return None
    if is_no_preference(expect.education_levels):
        return 1.0, "Education matches"
    lowered = level.strip().lower()
    tokens = {t for t in lowered.replace("-", " ").replace("_", " ").split() if t}
    include, exclude = split_include_exclude(expect.education_levels)
    if any(exc in tokens or exc in lowered for exc in exclude):
        return 0.0, None
    if any(inc == lowered or inc in tokens for inc in include):
        return 1.0, "Education matches"
    return EDUCATION_UNLISTED_FRACTION, None


def _alcohol(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    drinks = candidate.health.is_alcoholic if candidate.health else None
    if drinks is None:
        return None
    pref = (expect.alcohol or "").strip().lower()
    if is_no_preference(pref) or pref == "occasionally":
        return 1.0, "Alcohol preference matches"
    if (pref == "yes" and drinks is True) or (pref == "no" and drinks is False):
        return 1.0, "Alcohol preference matches"
    return 0.0, None


def _profession(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    occupation = candidate.profession.occupation if candidate.profession else None
    if not occupation:
        return None
    if is_no_preference(expect.professions) or include_exclude_match(expect.professions, [occupation]):
        return 1.0, "Profession preference matched"
    return 0.0, None


_ALL_DIETS = (
    "vegetarian",
    "non-vegetarian",
    "eggetarian",
    "jain",
    "swaminarayan",
    "veg & non-veg",
)


def canonical_diet(value: str) -> str:
    x = value.strip().lower()
    if "swamin" in x:
        return "swaminarayan"
    if "jain" in x:
        return "jain"
    if "egg" in x:
        return "eggetarian"
    if x in {"veg & non-veg", "veg & non veg", "both", "flexible"}:
        return "veg & non-veg"
    if "non" in x:
        return "non-vegetarian"
    if "veg" in x:
        return "vegetarian"
    return x


def _diets_allowed_by(pref: str) -> tuple[str, ...]:
    canon = canonical_diet(pref)
    if canon == "eggetarian":
        return ("eggetarian", "vegetarian", "swaminarayan")
    if canon == "vegetarian":
        return ("vegetarian", "jain", "swaminarayan")
    if canon in {"non-vegetarian", "veg & non-veg"}:
        return _ALL_DIETS
    return (canon,)


def _diet(expect: Expectations, candidate: CandidateView, now: datetime) -> CriterionResult:
    diets = to_str_list(candidate.health.diet) if candidate.health else []
    if not diets:
        return None
    if is_no_preference(expect.diet):
        return 1.0, "Diet preference matched"

    include, exclude = split_include_exclude(expect.diet)
    allowed: set[str] = set(_ALL_DIETS) if not include else set()
    for pref in include:
        allowed.update(_diets_allowed_by(pref))
    allowed -= {canonical_diet(e) for e in exclude}

    if any(canonical_diet(d) in allowed for d in diets):
        return 1.0, "Diet preference matched"
    return 0.0, None


CRITERIA: dict[str, Callable[[Expectations, CandidateView, datetime], CriterionResult]] = {
    "age": _age,
    "community": _community,
    "location": _location,
    "marital_status": _marital_status,
    "education": _education,
    "alcohol": _alcohol,
    "profession": _profession,
    "diet": _diet,
}


def score(
    seeker: CandidateView | None,
    expectations: Expectations | None,
    candidate: CandidateView,
    now: datetime | None = None,
    weights: Mapping[str, float] | None = None,
) -> ScoreDetail:
    if seeker is None or expectations is None:
        return NEUTRAL_SCORE
    now = now or datetime.now(timezone.utc)
    weights = weights or SCORE_WEIGHTS

    total = 0.0
    reasons: list[str] = []
    breakdown: dict[str, float] = {}
    for name, criterion in CRITERIA.items():
        weight = float(weights.get(name, 0.0))
        result = criterion(expectations, candidate, now)
        if result is None:
            breakdown[name] = 0.0
            continue
        fraction, reason = result
        contribution = round(weight * max(0.0, min(1.0, fraction)), 2)
        breakdown[name] = contribution
        total += contribution
        if contribution > 0 and reason and reason not in reasons:
            reasons.append(reason)

    return ScoreDetail(score=round(total, 2), reasons=tuple(reasons), breakdown=breakdown)
