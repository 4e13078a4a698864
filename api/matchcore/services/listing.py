from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from .normalize import Disclosure, calculate_age
from .scoring import ScoreDetail
from .views import CandidateView


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _photo(view: CandidateView) -> dict[str, Any] | None:
    url = view.media.closer_photo_url if view.media else None
    return {"url": url} if url else None


def _yes_no(value: bool | None) -> str | None:
    if value is None:
        return None
    return "Yes" if value else "No"


def format_listing(
    view: CandidateView,
    detail: ScoreDetail | None,
    now: datetime,
    favorite_ids: Iterable[str] = (),
) -> dict[str, Any]:
    ident = view.identity
    personal = view.personal
    profession = view.profession
    return {
        "user": {
            "userId": view.user_id,
            "firstName": ident.first_name if ident else None,
            "lastName": ident.last_name if ident else None,
            "status": "active" if ident and ident.is_active else "inactive",
            "age": calculate_age(ident.date_of_birth, now) if ident else None,
            "city": personal.city if personal else None,
            "state": personal.state if personal else None,
            "country": personal.country if personal else None,
            "religion": personal.religion if personal else None,
            "subCaste": personal.sub_caste if personal else None,
            "profession": profession.occupation if profession else None,
            "isFavorite": view.user_id in set(favorite_ids),
            "closerPhoto": _photo(view),
            "createdAt": _iso(ident.created_at) if ident else None,
        },
        "scoreDetail": {
            "score": detail.score if detail else None,
            "reasons": list(detail.reasons) if detail else [],
        },
    }


def format_comparison_row(view: CandidateView, compatibility: float | None, now: datetime) -> dict[str, Any]:
    """One column of the side-by-side comparison table.

    Sensitive health values are never exposed here; only lifestyle fields are.
    """
    ident = view.identity
    personal = view.personal
    health = view.health
    education = view.education
    return {
        "userId": view.user_id,
        "firstName": ident.first_name if ident else None,
        "lastName": ident.last_name if ident else None,
        "age": calculate_age(ident.date_of_birth, now) if ident else None,
        "height": personal.height if personal else None,
        "weight": personal.weight if personal else None,
        "city": personal.city if personal else None,
        "religion": personal.religion if personal else None,
        "caste": personal.sub_caste if personal else None,
        "maritalStatus": personal.marital_status if personal else None,
        "education": education.highest_level if education else None,
        "fieldOfStudy": education.field_of_study if education else None,
        "profession": view.profession.occupation if view.profession else None,
        "diet": health.diet if health else None,
        "smoking": _yes_no(health.is_tobacco_user) if health else None,
        "drinking": _yes_no(health.is_alcoholic) if health else None,
        "familyType": view.family.family_type if view.family else None,
        "closerPhoto": _photo(view),
        "compatibility": compatibility,
    }


def format_dashboard(
    view: CandidateView,
    now: datetime,
    interest_sent_count: int,
    compare_count: int,
) -> dict[str, Any]:
    ident = view.identity
    health = view.health
    return {
        "userId": view.user_id,
        "firstName": ident.first_name if ident else None,
        "lastName": ident.last_name if ident else None,
        "age": calculate_age(ident.date_of_birth, now) if ident else None,
        "city": view.personal.city if view.personal else None,
        "occupation": view.profession.occupation if view.profession else None,
        "closerPhoto": _photo(view),
        "healthDisclosed": health is not None and health.disclosure is not Disclosure.UNKNOWN,
        "interestSentCount": interest_sent_count,
        "compareCount": compare_count,
    }
