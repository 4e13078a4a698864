from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .config import SEARCH_DEFAULT_LIMIT


class SearchFilters(BaseModel):
    """Query-string filters for GET /search. Every field is optional."""

    name: str | None = Field(default=None, max_length=100)
    custom_id: str | None = Field(default=None, alias="customId", max_length=64)
    gender: Literal["male", "female"] | None = None
    new_profile: Literal["all", "last1week", "last3week", "last1month"] | None = Field(default=None, alias="newProfile")
    age_from: int | None = Field(default=None, alias="ageFrom", ge=0, le=120)
    age_to: int | None = Field(default=None, alias="ageTo", ge=0, le=120)
    height_from: float | None = Field(default=None, alias="heightFrom", ge=0)
    height_to: float | None = Field(default=None, alias="heightTo", ge=0)
    religion: str | None = Field(default=None, max_length=100)
    caste: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    profession: str | None = Field(default=None, max_length=100)
    sort_by: Literal["newest", "age"] | None = Field(default=None, alias="sortBy")
    page: int = 1
    limit: int = SEARCH_DEFAULT_LIMIT

    model_config = {"populate_by_name": True}


class CompareRequest(BaseModel):
    profiles_ids: list[str] = Field(default_factory=list, alias="profilesIds")

    model_config = {"populate_by_name": True}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    hasMore: bool


class SearchResponse(BaseModel):
    data: list[dict[str, Any]]
    pagination: Pagination


class ScoreResponse(BaseModel):
    candidate_id: str
    score: float
    reasons: list[str]
    breakdown: dict[str, float]


class RecommendedResponse(BaseModel):
    data: list[dict[str, Any]]
    min_score: float
    generated_at: datetime


class CompareListResponse(BaseModel):
    profiles_ids: list[str] = Field(serialization_alias="profilesIds")
