"""
Request-level orchestration: search, scoring, recommendations and the
per-user comparison set.

Each call is request scoped. The attribute store is the only shared state;
every score is computed from the views and expectations loaded for the call.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from .. import repo
from ..config import COMPARE_LIMIT, COMPARE_MAX_ATTEMPTS, MIN_MATCH_SCORE, SEARCH_DEFAULT_LIMIT
from ..errors import ConflictError, NotFoundError, ValidationError
from . import assembler, scoring
from .listing import format_comparison_row, format_dashboard, format_listing
from .search_plan import Phase, compile_search, paging
from .views import COMPARISON_GROUPS, LISTING_GROUPS, CandidateView, SeekerContext

logger = logging.getLogger(__name__)

_USER_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,35}$")


def validate_user_id(raw: Any, field: str = "user id") -> str:
    value = str(raw).strip() if raw is not None else ""
    if not _USER_ID_RE.match(value):
        raise ValidationError(f"Invalid {field}")
    return value


def _validate_id_list(raw: Any, field: str, max_items: int | None = None) -> list[str]:
    if isinstance(raw, str) or not isinstance(raw, (list, tuple, set, frozenset)):
        raise ValidationError(f"{field} must be a list of user ids")
    out: list[str] = []
    for item in raw:
        uid = validate_user_id(item, field)
        if uid not in out:
            out.append(uid)
    if not out:
        raise ValidationError(f"{field} must not be empty")
    if max_items is not None and len(out) > max_items:
        raise ValidationError(f"You can compare at most {max_items} profiles")
    return out


def _require_seeker(user_id: str) -> SeekerContext:
    seeker = assembler.load_seeker(user_id)
    if seeker is None:
        raise NotFoundError("User not found")
    return seeker


def _score(seeker: SeekerContext, candidate: CandidateView, now: datetime) -> scoring.ScoreDetail:
    return scoring.score(seeker.view, seeker.expectations, candidate, now=now)


def _favorites(seeker: SeekerContext | None) -> tuple[str, ...]:
    if seeker is None or seeker.view.media is None:
        return ()
    return seeker.view.media.favorite_ids


def search(
    request: Any,
    page: int | None = None,
    limit: int | None = None,
    auth_user_id: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    seeker = _require_seeker(validate_user_id(auth_user_id)) if auth_user_id else None
    page, limit, skip = paging(page, limit, SEARCH_DEFAULT_LIMIT)

    plan = compile_search(request, seeker=seeker, now=now)
    result = repo.run_plan(plan, skip=skip, limit=limit)
    views = assembler.assemble(result.ids, LISTING_GROUPS)

    favorites = _favorites(seeker)
    data = []
    for uid in result.ids:
        view = views.get(uid)
        if view is None:
            continue
        detail = _score(seeker, view, now) if seeker is not None else None
        data.append(format_listing(view, detail, now, favorites))

    logger.info(
        "[search] seeker=%s page=%s limit=%s returned=%s total=%s",
        seeker.user_id if seeker else None,
        page,
        limit,
        len(data),
        result.total,
    )
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": result.total,
            "hasMore": skip + len(data) < result.total,
        },
    }


def compute_match_score(
    seeker_id: str,
    candidate_id: str,
    hydrated: Mapping[str, CandidateView] | None = None,
    now: datetime | None = None,
) -> scoring.ScoreDetail:
    """Score one pair.

    `hydrated` may carry already assembled views keyed by user id; only what it
    lacks is loaded. A missing identity on either side, or a block in either
    direction, raises NotFoundError. A seeker without stored expectations gets
    the neutral score.
    """
    seeker_id = validate_user_id(seeker_id, "seeker id")
    candidate_id = validate_user_id(candidate_id, "candidate id")
    now = now or datetime.now(timezone.utc)
    if repo.is_either_blocked(seeker_id, candidate_id):
        raise NotFoundError("Candidate not found")

    views = dict(hydrated or {})
    missing = [uid for uid in (seeker_id, candidate_id) if uid not in views]
    if missing:
        views.update(assembler.assemble(missing, LISTING_GROUPS))
    seeker_view = views.get(seeker_id)
    candidate_view = views.get(candidate_id)
    if seeker_view is None or seeker_view.identity is None:
        raise NotFoundError("Seeker not found")
    if candidate_view is None or candidate_view.identity is None:
        raise NotFoundError("Candidate not found")

    return scoring.score(seeker_view, repo.get_expectations(seeker_id), candidate_view, now=now)


def find_matching_users(
    seeker_id: str,
    min_score: float = MIN_MATCH_SCORE,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Recommended candidates scoring at least `min_score`, best first.

    Candidates the seeker has favorited or already exchanged a connection
    request with are left out.
    """
    seeker = _require_seeker(validate_user_id(seeker_id, "seeker id"))
    now = now or datetime.now(timezone.utc)

    plan = compile_search(None, seeker=seeker, now=now)
    pre = repo.run_plan(plan.only(Phase.PRE_JOIN))

    favorites = set(_favorites(seeker))
    connected = repo.get_connection_counterparts(seeker.user_id)
    ids = [uid for uid in pre.ids if uid not in favorites and uid not in connected]
    views = assembler.assemble(ids, LISTING_GROUPS)

    scored: list[tuple[CandidateView, scoring.ScoreDetail]] = []
    for uid in ids:
        view = views.get(uid)
        if view is None or not plan.matches(view, (Phase.POST_JOIN, Phase.PRIVACY)):
            continue
        detail = _score(seeker, view, now)
        if detail.score >= min_score:
            scored.append((view, detail))

    scored.sort(key=lambda pair: (-pair[1].score, pair[0].user_id))
    if limit is not None:
        scored = scored[: max(0, limit)]
    logger.info(
        "[match] seeker=%s pool=%s recommended=%s min_score=%s",
        seeker.user_id,
        len(ids),
        len(scored),
        min_score,
    )
    return [format_listing(view, detail, now, favorites) for view, detail in scored]


def compare_profiles(
    ids: Iterable[Any],
    auth_user_id: str | None = None,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    wanted = _validate_id_list(ids, "profilesIds", max_items=COMPARE_LIMIT)
    now = now or datetime.now(timezone.utc)
    seeker = _require_seeker(validate_user_id(auth_user_id)) if auth_user_id else None

    views = assembler.assemble(wanted, COMPARISON_GROUPS)
    rows = []
    for uid in wanted:
        view = views.get(uid)
        if view is None:
            logger.info("[compare] dropping %s: profile not found", uid)
            continue
        compatibility = _score(seeker, view, now).score if seeker is not None else None
        rows.append(format_comparison_row(view, compatibility, now))
    return rows


def _compare_state(user_id: str) -> tuple[list[str], int]:
    state = repo.get_compare_state(user_id)
    if state is None:
        raise NotFoundError("Profile not found")
    return state


def add_compare_profiles(user_id: str, ids: Iterable[Any]) -> list[str]:
    """Union `ids` into the user's comparison set, capped at COMPARE_LIMIT.

    The write is a version-checked swap; a lost race re-reads and retries up
    to COMPARE_MAX_ATTEMPTS times before raising ConflictError. A rejected
    request leaves the stored set untouched.
    """
    uid = validate_user_id(user_id)
    wanted = _validate_id_list(ids, "profilesIds")
    if uid in wanted:
        raise ValidationError("You cannot add your own profile to compare")

    known = repo.get_identities(wanted)
    unknown = [i for i in wanted if i not in known]
    if unknown:
        raise NotFoundError(f"Profiles not found: {', '.join(unknown)}")

    for attempt in range(1, COMPARE_MAX_ATTEMPTS + 1):
        current, version = _compare_state(uid)
        new_ids = [i for i in wanted if i not in current]
        if not new_ids:
            raise ValidationError("Profiles already in compare list")
        merged = current + new_ids
        if len(merged) > COMPARE_LIMIT:
            raise ValidationError(f"You can compare at most {COMPARE_LIMIT} profiles")
        if repo.swap_compare_ids(uid, version, merged):
            logger.info("[compare] user=%s added=%s size=%s", uid, len(new_ids), len(merged))
            return merged
        logger.warning("[compare] version conflict for user=%s (attempt %s/%s)", uid, attempt, COMPARE_MAX_ATTEMPTS)

    raise ConflictError("Compare list changed concurrently; please retry")


def remove_compare_profiles(user_id: str, ids: Iterable[Any]) -> list[str]:
    uid = validate_user_id(user_id)
    unwanted = set(_validate_id_list(ids, "profilesIds"))

    for attempt in range(1, COMPARE_MAX_ATTEMPTS + 1):
        current, version = _compare_state(uid)
        remaining = [i for i in current if i not in unwanted]
        if len(remaining) == len(current):
            return current
        if repo.swap_compare_ids(uid, version, remaining):
            logger.info("[compare] user=%s removed=%s size=%s", uid, len(current) - len(remaining), len(remaining))
            return remaining
        logger.warning("[compare] version conflict for user=%s (attempt %s/%s)", uid, attempt, COMPARE_MAX_ATTEMPTS)

    raise ConflictError("Compare list changed concurrently; please retry")


def get_compare_profiles(user_id: str, now: datetime | None = None) -> list[dict[str, Any]]:
    uid = validate_user_id(user_id)
    current, _ = _compare_state(uid)
    if not current:
        return []
    return compare_profiles(current, auth_user_id=uid, now=now)


def dashboard_summary(user_id: str, now: datetime | None = None) -> dict[str, Any]:
    uid = validate_user_id(user_id)
    now = now or datetime.now(timezone.utc)
    view = assembler.assemble_one(uid, LISTING_GROUPS)
    if view is None:
        raise NotFoundError("User not found")
    return format_dashboard(
        view,
        now,
        interest_sent_count=repo.count_pending(uid),
        compare_count=len(repo.get_compare_ids(uid)),
    )
