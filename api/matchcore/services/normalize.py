from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any


_NO_PREFERENCE_MARKERS = ("no preference", "any")
_EXCLUDE_PREFIX = "not "


class Disclosure(str, enum.Enum):
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    UNKNOWN = "unknown"


# Every encoding of the sensitive yes/no attribute seen in stored records.
_DISCLOSURE_ENCODINGS: dict[Disclosure, tuple[Any, ...]] = {
    Disclosure.AFFIRMATIVE: (True, 1, "true", "yes", "1"),
    Disclosure.NEGATIVE: (False, 0, "false", "no", "0"),
}


def disclosure_state(value: Any) -> Disclosure:
    if isinstance(value, bool):
        return Disclosure.AFFIRMATIVE if value else Disclosure.NEGATIVE
    if isinstance(value, str):
        value = value.strip().lower()
    elif isinstance(value, float) and value.is_integer():
        value = int(value)
    elif not isinstance(value, int):
        return Disclosure.UNKNOWN
    for state, encodings in _DISCLOSURE_ENCODINGS.items():
        for enc in encodings:
            if type(enc) is type(value) and enc == value:
                return state
    return Disclosure.UNKNOWN


def disclosure_text_values(state: Disclosure) -> tuple[str, ...]:
    """Lower-cased text forms of `state`, for matching a text column."""
    if state is Disclosure.UNKNOWN:
        return ()
    out: list[str] = []
    for enc in _DISCLOSURE_ENCODINGS[state]:
        txt = str(enc).lower()
        if txt not in out:
            out.append(txt)
    return tuple(out)


def to_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, bool):
        return [str(value).lower()]
    if value == 0 and isinstance(value, (int, float)):
        return ["0"]
    if isinstance(value, dict):
        flat: list[Any] = []
        for v in value.values():
            if isinstance(v, (list, tuple)):
                flat.extend(v)
            else:
                flat.append(v)
        return to_str_list(flat)
    if isinstance(value, (list, tuple, set, frozenset)):
        out = []
        for item in value:
            if item is None:
                continue
            txt = str(item).strip()
            if txt:
                out.append(txt)
        return out
    return [part.strip() for part in str(value).split(",") if part.strip()]


def is_no_preference(value: Any) -> bool:
    items = to_str_list(value)
    if not items:
        return True
    for item in items:
        lowered = item.lower()
        # Whole-word only: "Germany" must not read as "any".
        if lowered in _NO_PREFERENCE_MARKERS or _NO_PREFERENCE_MARKERS[0] in lowered:
            return True
    return False


def split_include_exclude(prefs: Any) -> tuple[list[str], list[str]]:
    include: list[str] = []
    exclude: list[str] = []
    for item in to_str_list(prefs):
        lowered = item.lower()
        if lowered.startswith(_EXCLUDE_PREFIX):
            exclude.append(lowered[len(_EXCLUDE_PREFIX):].strip())
        else:
            include.append(lowered)
    return include, exclude


def include_exclude_match(prefs: Any, candidate_values: list[str]) -> bool:
    include, exclude = split_include_exclude(prefs)
    cand = {c.strip().lower() for c in candidate_values if c and c.strip()}
    in_include = not include or any(i in cand for i in include)
    in_exclude = any(e in cand for e in exclude)
    return in_include and not in_exclude


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    txt = str(value).strip()
    return txt or None


def years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year.
        return day.replace(year=day.year - years, day=28)


def as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_age(birth_date: date | datetime | None, now: date | datetime) -> int | None:
    if birth_date is None:
        return None
    born = as_date(birth_date)
    today = as_date(now)
    age = today.year - born.year - ((today.month, today.day) < (born.month, born.day))
    return age if age >= 0 else None


def coerce_height(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
