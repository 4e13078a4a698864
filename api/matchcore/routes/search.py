from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from ..deps import optional_actor
from ..schemas import SearchFilters, SearchResponse
from ..services import matching
from ..services.rate_limit import rate_limited

router = APIRouter()

RL_SEARCH = rate_limited("search")


@router.get("/search", response_model=SearchResponse, dependencies=[RL_SEARCH])
def search_profiles(
    filters: Annotated[SearchFilters, Query()],
    actor_user_id: str | None = Depends(optional_actor),
) -> dict[str, Any]:
    return matching.search(filters, page=filters.page, limit=filters.limit, auth_user_id=actor_user_id)
