from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from ..config import MIN_MATCH_SCORE, SEARCH_MAX_LIMIT
from ..deps import require_actor
from ..schemas import RecommendedResponse, ScoreResponse
from ..services import matching

router = APIRouter()


@router.get("/matches/recommended", response_model=RecommendedResponse)
def recommended_matches(
    limit: int | None = None,
    actor_user_id: str = Depends(require_actor),
) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    if limit is not None:
        limit = max(1, min(SEARCH_MAX_LIMIT, limit))
    rows = matching.find_matching_users(actor_user_id, min_score=MIN_MATCH_SCORE, limit=limit, now=now)
    return {"data": rows, "min_score": MIN_MATCH_SCORE, "generated_at": now}


@router.get("/matches/score/{candidate_id}", response_model=ScoreResponse)
def match_score(candidate_id: str, actor_user_id: str = Depends(require_actor)) -> dict[str, Any]:
    detail = matching.compute_match_score(actor_user_id, candidate_id)
    return {"candidate_id": candidate_id, **detail.to_dict()}


@router.get("/dashboard")
def dashboard(actor_user_id: str = Depends(require_actor)) -> dict[str, Any]:
    return matching.dashboard_summary(actor_user_id)
