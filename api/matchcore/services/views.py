from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from .normalize import Disclosure, disclosure_state


class CandidateGroup(str, enum.Enum):
    IDENTITY = "identity"
    PERSONAL = "personal"
    FAMILY = "family"
    HEALTH = "health"
    EDUCATION = "education"
    PROFESSION = "profession"
    MEDIA = "media"


SCORING_GROUPS = frozenset(
    {
        CandidateGroup.IDENTITY,
        CandidateGroup.PERSONAL,
        CandidateGroup.HEALTH,
        CandidateGroup.EDUCATION,
        CandidateGroup.PROFESSION,
    }
)
LISTING_GROUPS = SCORING_GROUPS | {CandidateGroup.MEDIA}
COMPARISON_GROUPS = frozenset(CandidateGroup)


@dataclass(frozen=True)
class Identity:
    user_id: str
    first_name: str | None = None
    middle_name: str | None = None
    last_name: str | None = None
    custom_id: str | None = None
    gender: str | None = None
    date_of_birth: date | None = None
    created_at: datetime | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Personal:
    height: float | None = None
    weight: float | None = None
    religion: str | None = None
    sub_caste: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    marital_status: str | None = None


@dataclass(frozen=True)
class Family:
    family_type: str | None = None


@dataclass(frozen=True)
class Health:
    diet: str | None = None
    is_alcoholic: bool | None = None
    is_tobacco_user: bool | None = None
    hiv_status: Any = None
    other_conditions: tuple[str, ...] = ()

    @property
    def disclosure(self) -> Disclosure:
        return disclosure_state(self.hiv_status)


@dataclass(frozen=True)
class Education:
    highest_level: str | None = None
    field_of_study: str | None = None


@dataclass(frozen=True)
class Profession:
    occupation: str | None = None
    organization: str | None = None
    income_band: str | None = None


@dataclass(frozen=True)
class ProfileMedia:
    closer_photo_url: str | None = None
    favorite_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Expectations:
    """Seeker preferences. Empty tuples mean "no preference"."""

    age_from: int | None = None
    age_to: int | None = None
    marital_status: tuple[str, ...] = ()
    alcohol: str | None = None
    education_levels: tuple[str, ...] = ()
    community: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    states: tuple[str, ...] = ()
    professions: tuple[str, ...] = ()
    diet: tuple[str, ...] = ()


@dataclass(frozen=True)
class CandidateView:
    """Joined read-model for one user. `None` groups mean the record is absent."""

    user_id: str
    identity: Identity | None = None
    personal: Personal | None = None
    family: Family | None = None
    health: Health | None = None
    education: Education | None = None
    profession: Profession | None = None
    media: ProfileMedia | None = None


@dataclass(frozen=True)
class SeekerContext:
    view: CandidateView
    expectations: Expectations | None
    blocked_ids: frozenset[str] = field(default_factory=frozenset)
    blocker_ids: frozenset[str] = field(default_factory=frozenset)
    disclosure: Disclosure = Disclosure.UNKNOWN

    @property
    def user_id(self) -> str:
        return self.view.user_id
