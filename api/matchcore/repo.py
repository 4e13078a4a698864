import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from sqlalchemy import func, or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError

from .database import SessionLocal
from .errors import DependencyError
from .models import (
    UserAccount,
    UserEducation,
    UserExpectations,
    UserFamily,
    UserHealth,
    UserPersonal,
    UserProfession,
    UserProfile,
)
from .services.normalize import clean_str, disclosure_text_values, to_str_list
from .services.search_plan import (
    AtLeast,
    DateWindow,
    DisclosureIs,
    Equals,
    ExactIgnoreCase,
    NotIn,
    NumericRange,
    Predicate,
    QueryPlan,
    Substring,
)
from .services.views import Education, Expectations, Family, Health, Identity, Personal, Profession, ProfileMedia

logger = logging.getLogger(__name__)


@contextmanager
def _session() -> Iterator[Any]:
    try:
        with SessionLocal() as db:
            yield db
    except SQLAlchemyError as exc:
        logger.error("[store] attribute store call failed: %s", exc)
        raise DependencyError("Attribute store unavailable") from exc


def _ids(ids: Iterable[Any]) -> list[str]:
    return sorted({str(i) for i in ids if i})


def _batch(model, ids: Iterable[Any], convert: Callable[[Any], Any]) -> dict[str, Any]:
    wanted = _ids(ids)
    if not wanted:
        return {}
    with _session() as db:
        rows = db.execute(select(model).where(model.user_id.in_(wanted))).scalars().all()
    return {str(r.user_id): convert(r) for r in rows}


def _to_identity(row: UserAccount) -> Identity:
    return Identity(
        user_id=str(row.id),
        first_name=clean_str(row.first_name),
        middle_name=clean_str(row.middle_name),
        last_name=clean_str(row.last_name),
        custom_id=clean_str(row.custom_id),
        gender=clean_str(row.gender),
        date_of_birth=row.date_of_birth,
        created_at=row.created_at,
        is_active=bool(row.is_active),
    )


def _to_personal(row: UserPersonal) -> Personal:
    return Personal(
        height=row.height,
        weight=row.weight,
        religion=clean_str(row.religion),
        sub_caste=clean_str(row.sub_caste),
        city=clean_str(row.city),
        state=clean_str(row.state),
        country=clean_str(row.country),
        marital_status=clean_str(row.marital_status),
    )


def _to_family(row: UserFamily) -> Family:
    return Family(family_type=clean_str(row.family_type))


def _to_health(row: UserHealth) -> Health:
    return Health(
        diet=clean_str(row.diet),
        is_alcoholic=row.is_alcoholic,
        is_tobacco_user=row.is_tobacco_user,
        hiv_status=row.hiv_status,
        other_conditions=tuple(to_str_list(row.other_conditions)),
    )


def _to_education(row: UserEducation) -> Education:
    return Education(highest_level=clean_str(row.highest_level), field_of_study=clean_str(row.field_of_study))


def _to_profession(row: UserProfession) -> Profession:
    return Profession(
        occupation=clean_str(row.occupation),
        organization=clean_str(row.organization),
        income_band=clean_str(row.income_band),
    )


def _to_media(row: UserProfile) -> ProfileMedia:
    return ProfileMedia(
        closer_photo_url=clean_str(row.closer_photo_url),
        favorite_ids=tuple(to_str_list(row.favorite_ids)),
    )


def _to_expectations(row: UserExpectations) -> Expectations:
    return Expectations(
        age_from=row.age_from,
        age_to=row.age_to,
        marital_status=tuple(to_str_list(row.marital_status)),
        alcohol=clean_str(row.alcohol),
        education_levels=tuple(to_str_list(row.education_levels)),
        community=tuple(to_str_list(row.community)),
        countries=tuple(to_str_list(row.countries)),
        states=tuple(to_str_list(row.states)),
        professions=tuple(to_str_list(row.professions)),
        diet=tuple(to_str_list(row.diet)),
    )


def get_identities(ids: Iterable[Any]) -> dict[str, Identity]:
    wanted = _ids(ids)
    if not wanted:
        return {}
    with _session() as db:
        rows = (
            db.execute(select(UserAccount).where(UserAccount.id.in_(wanted), UserAccount.is_deleted.is_(False)))
            .scalars()
            .all()
        )
    return {str(r.id): _to_identity(r) for r in rows}


def get_identity(user_id: str) -> Identity | None:
    return get_identities([user_id]).get(str(user_id))


def get_personals(ids: Iterable[Any]) -> dict[str, Personal]:
    return _batch(UserPersonal, ids, _to_personal)


def get_families(ids: Iterable[Any]) -> dict[str, Family]:
    return _batch(UserFamily, ids, _to_family)


def get_healths(ids: Iterable[Any]) -> dict[str, Health]:
    return _batch(UserHealth, ids, _to_health)


def get_health(user_id: str) -> Health | None:
    return get_healths([user_id]).get(str(user_id))


def get_educations(ids: Iterable[Any]) -> dict[str, Education]:
    return _batch(UserEducation, ids, _to_education)


def get_professions(ids: Iterable[Any]) -> dict[str, Profession]:
    return _batch(UserProfession, ids, _to_profession)


def get_profile_media(ids: Iterable[Any]) -> dict[str, ProfileMedia]:
    return _batch(UserProfile, ids, _to_media)


def get_expectations_for(ids: Iterable[Any]) -> dict[str, Expectations]:
    return _batch(UserExpectations, ids, _to_expectations)


def get_expectations(user_id: str) -> Expectations | None:
    return get_expectations_for([user_id]).get(str(user_id))


def get_block_sets(user_id: str) -> tuple[frozenset[str], frozenset[str]]:
    """Return (ids this user blocked, ids who blocked this user)."""
    with _session() as db:
        rows = db.execute(
            text(
                """
                SELECT blocker_id, blocked_id
                FROM user_block
                WHERE blocker_id = :user_id OR blocked_id = :user_id
                """
            ),
            {"user_id": str(user_id)},
        ).mappings().all()
    blocked = frozenset(str(r["blocked_id"]) for r in rows if str(r["blocker_id"]) == str(user_id))
    blockers = frozenset(str(r["blocker_id"]) for r in rows if str(r["blocked_id"]) == str(user_id))
    return blocked, blockers


def is_either_blocked(user_a: str, user_b: str) -> bool:
    if not user_a or not user_b:
        return False
    with _session() as db:
        row = db.execute(
            text(
                """
                SELECT 1 AS hit
                FROM user_block
                WHERE (blocker_id = :a AND blocked_id = :b)
                   OR (blocker_id = :b AND blocked_id = :a)
                LIMIT 1
                """
            ),
            {"a": str(user_a), "b": str(user_b)},
        ).mappings().first()
    return row is not None


def count_pending(sender_id: str) -> int:
    with _session() as db:
        row = db.execute(
            text("SELECT COUNT(1) AS n FROM connection_request WHERE sender_id = :sender_id AND status = 'pending'"),
            {"sender_id": str(sender_id)},
        ).mappings().first()
    return int((row or {}).get("n") or 0)


def get_connection_counterparts(user_id: str) -> set[str]:
    with _session() as db:
        rows = db.execute(
            text(
                """
                SELECT sender_id, receiver_id
                FROM connection_request
                WHERE sender_id = :user_id OR receiver_id = :user_id
                """
            ),
            {"user_id": str(user_id)},
        ).mappings().all()
    out: set[str] = set()
    for r in rows:
        other = r["receiver_id"] if str(r["sender_id"]) == str(user_id) else r["sender_id"]
        out.add(str(other))
    return out


# ---------------------------------------------------------------------------
# Plan execution
# ---------------------------------------------------------------------------

_COLUMNS = {
    "user_id": UserAccount.id,
    "gender": UserAccount.gender,
    "first_name": UserAccount.first_name,
    "middle_name": UserAccount.middle_name,
    "last_name": UserAccount.last_name,
    "custom_id": UserAccount.custom_id,
    "date_of_birth": UserAccount.date_of_birth,
    "created_at": UserAccount.created_at,
    "is_active": UserAccount.is_active,
    "height": UserPersonal.height,
    "religion": UserPersonal.religion,
    "sub_caste": UserPersonal.sub_caste,
    "city": UserPersonal.city,
    "occupation": UserProfession.occupation,
    "organization": UserProfession.organization,
    "hiv_status": UserHealth.hiv_status,
}


@dataclass(frozen=True)
class PlanPage:
    ids: list[str]
    total: int


def _like_literal(needle: str) -> str:
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _clause(pred: Predicate):
    if isinstance(pred, Equals):
        return _COLUMNS[pred.field] == pred.value
    if isinstance(pred, Substring):
        pattern = _like_literal(pred.needle)
        return or_(*[_COLUMNS[f].ilike(pattern, escape="\\") for f in pred.fields])
    if isinstance(pred, ExactIgnoreCase):
        return func.lower(_COLUMNS[pred.field]) == pred.value.lower()
    if isinstance(pred, AtLeast):
        return _COLUMNS[pred.field] >= pred.bound
    if isinstance(pred, DateWindow):
        return _COLUMNS[pred.field].between(pred.start, pred.end)
    if isinstance(pred, NumericRange):
        value = func.coalesce(_COLUMNS[pred.field], pred.fallback)
        parts = []
        if pred.low is not None:
            parts.append(value >= pred.low)
        if pred.high is not None:
            parts.append(value <= pred.high)
        return parts[0] if len(parts) == 1 else parts[0] & parts[1]
    if isinstance(pred, NotIn):
        return _COLUMNS[pred.field].not_in(sorted(pred.values))
    if isinstance(pred, DisclosureIs):
        return func.lower(func.trim(_COLUMNS[pred.field])).in_(disclosure_text_values(pred.state))
    raise TypeError(f"Unsupported predicate: {pred!r}")


def _order_by(plan: QueryPlan) -> list[Any]:
    out = []
    for key in plan.order:
        col = _COLUMNS[key.field]
        out.append(col.desc().nulls_last() if key.descending else col.asc())
    return out


def run_plan(plan: QueryPlan, skip: int = 0, limit: int | None = None) -> PlanPage:
    base = (
        select(UserAccount.id)
        .select_from(UserAccount)
        .outerjoin(UserPersonal, UserPersonal.user_id == UserAccount.id)
        .outerjoin(UserProfession, UserProfession.user_id == UserAccount.id)
        .outerjoin(UserHealth, UserHealth.user_id == UserAccount.id)
        .where(UserAccount.is_deleted.is_(False))
    )
    for pred in plan.predicates:
        base = base.where(_clause(pred))

    page_stmt = base.order_by(*_order_by(plan)).offset(max(0, skip))
    if limit is not None:
        page_stmt = page_stmt.limit(max(1, limit))
    count_stmt = select(func.count()).select_from(base.subquery())

    with _session() as db:
        total = int(db.execute(count_stmt).scalar() or 0)
        ids = [str(i) for i in db.execute(page_stmt).scalars().all()]
    logger.debug("[store] plan returned %s/%s ids (skip=%s limit=%s)", len(ids), total, skip, limit)
    return PlanPage(ids=ids, total=total)


# ---------------------------------------------------------------------------
# Compare set (optimistic concurrency on user_profile.compare_version)
# ---------------------------------------------------------------------------


def get_compare_state(user_id: str) -> tuple[list[str], int] | None:
    with _session() as db:
        row = db.execute(
            select(UserProfile.compare_ids, UserProfile.compare_version).where(UserProfile.user_id == str(user_id))
        ).first()
    if row is None:
        return None
    return to_str_list(row[0]), int(row[1] or 0)


def get_compare_ids(user_id: str) -> list[str]:
    state = get_compare_state(user_id)
    return state[0] if state else []


def swap_compare_ids(user_id: str, expected_version: int, new_ids: list[str]) -> bool:
    """Write `new_ids` only if nobody else wrote since `expected_version` was read."""
    with _session() as db:
        result = db.execute(
            update(UserProfile)
            .where(UserProfile.user_id == str(user_id), UserProfile.compare_version == expected_version)
            .values(compare_ids=list(new_ids), compare_version=expected_version + 1)
        )
        db.commit()
    return result.rowcount == 1
