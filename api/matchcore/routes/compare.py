from typing import Any

from fastapi import APIRouter, Depends

from ..deps import optional_actor, require_actor
from ..schemas import CompareListResponse, CompareRequest
from ..services import matching
from ..services.rate_limit import rate_limited

router = APIRouter()

RL_COMPARE_WRITE = rate_limited("compare_write")


@router.post("/compare")
def compare(payload: CompareRequest, actor_user_id: str | None = Depends(optional_actor)) -> dict[str, Any]:
    return {"data": matching.compare_profiles(payload.profiles_ids, auth_user_id=actor_user_id)}


@router.get("/compare/list")
def get_compare_list(actor_user_id: str = Depends(require_actor)) -> dict[str, Any]:
    return {"data": matching.get_compare_profiles(actor_user_id)}


@router.post("/compare/list", response_model=CompareListResponse, dependencies=[RL_COMPARE_WRITE])
def add_to_compare_list(payload: CompareRequest, actor_user_id: str = Depends(require_actor)) -> dict[str, Any]:
    return {"profiles_ids": matching.add_compare_profiles(actor_user_id, payload.profiles_ids)}


@router.delete("/compare/list", response_model=CompareListResponse, dependencies=[RL_COMPARE_WRITE])
def remove_from_compare_list(payload: CompareRequest, actor_user_id: str = Depends(require_actor)) -> dict[str, Any]:
    return {"profiles_ids": matching.remove_compare_profiles(actor_user_id, payload.profiles_ids)}
