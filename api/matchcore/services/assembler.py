from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable

from .. import repo
from ..config import ASSEMBLER_MAX_WORKERS
from .normalize import Disclosure
from .views import CandidateGroup, CandidateView, LISTING_GROUPS, SeekerContext

logger = logging.getLogger(__name__)

# One batch lookup per attribute kind; looked up by name so tests can patch repo.
_BATCH_LOOKUPS: dict[CandidateGroup, str] = {
    CandidateGroup.IDENTITY: "get_identities",
    CandidateGroup.PERSONAL: "get_personals",
    CandidateGroup.FAMILY: "get_families",
    CandidateGroup.HEALTH: "get_healths",
    CandidateGroup.EDUCATION: "get_educations",
    CandidateGroup.PROFESSION: "get_professions",
    CandidateGroup.MEDIA: "get_profile_media",
}


def _unique(ids: Iterable[Any]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for raw in ids:
        uid = str(raw).strip() if raw is not None else ""
        if uid and uid not in seen:
            seen.add(uid)
            out.append(uid)
    return out


def _run_concurrently(calls: dict[Any, tuple[Any, ...]]) -> dict[Any, Any]:
    """Run name -> (fn, *args) calls in parallel; any failure fails the whole batch."""
    if not calls:
        return {}
    workers = max(1, min(len(calls), ASSEMBLER_MAX_WORKERS))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {key: pool.submit(fn, *args) for key, (fn, *args) in calls.items()}
        return {key: fut.result() for key, fut in futures.items()}


def assemble(ids: Iterable[Any], groups: Iterable[CandidateGroup] = LISTING_GROUPS) -> dict[str, CandidateView]:
    """Join identity plus the requested attribute groups for `ids`.

    Ids with no live identity record are left out of the result. Missing
    attribute records stay None on the view.
    """
    wanted = _unique(ids)
    if not wanted:
        return {}
    kinds = {CandidateGroup.IDENTITY, *groups}
    calls = {kind: (getattr(repo, _BATCH_LOOKUPS[kind]), wanted) for kind in CandidateGroup if kind in kinds}
    results = _run_concurrently(calls)

    def _pick(kind: CandidateGroup, uid: str):
        return (results.get(kind) or {}).get(uid)

    views: dict[str, CandidateView] = {}
    for uid in wanted:
        identity = _pick(CandidateGroup.IDENTITY, uid)
        if identity is None:
            logger.debug("[assembler] dropping %s: no live identity record", uid)
            continue
        views[uid] = CandidateView(
            user_id=uid,
            identity=identity,
            personal=_pick(CandidateGroup.PERSONAL, uid),
            family=_pick(CandidateGroup.FAMILY, uid),
            health=_pick(CandidateGroup.HEALTH, uid),
            education=_pick(CandidateGroup.EDUCATION, uid),
            profession=_pick(CandidateGroup.PROFESSION, uid),
            media=_pick(CandidateGroup.MEDIA, uid),
        )
    return views


def assemble_one(user_id: str, groups: Iterable[CandidateGroup] = LISTING_GROUPS) -> CandidateView | None:
    return assemble([user_id], groups).get(str(user_id))


def load_seeker(seeker_id: str) -> SeekerContext | None:
    """Everything the compiler and scorer need about the requesting user."""
    uid = str(seeker_id)
    results = _run_concurrently(
        {
            "identity": (repo.get_identity, uid),
            "health": (repo.get_health, uid),
            "media": (repo.get_profile_media, [uid]),
            "expectations": (repo.get_expectations, uid),
            "blocks": (repo.get_block_sets, uid),
        }
    )
    identity = results["identity"]
    if identity is None:
        return None
    health = results["health"]
    blocked, blockers = results["blocks"]
    view = CandidateView(user_id=uid, identity=identity, health=health, media=results["media"].get(uid))
    return SeekerContext(
        view=view,
        expectations=results["expectations"],
        blocked_ids=frozenset(blocked),
        blocker_ids=frozenset(blockers),
        disclosure=health.disclosure if health is not None else Disclosure.UNKNOWN,
    )
