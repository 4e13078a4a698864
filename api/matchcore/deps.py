from fastapi import Header

from .errors import ValidationError
from .services.matching import validate_user_id


def parse_actor_user_id(raw_actor_user_id: str | None) -> str | None:
    if not raw_actor_user_id:
        return None
    value = raw_actor_user_id.strip()
    if not value:
        return None
    try:
        return validate_user_id(value)
    except ValidationError:
        raise ValidationError("X-Actor-User-Id must be a valid user id")


def optional_actor(x_actor_user_id: str | None = Header(default=None)) -> str | None:
    return parse_actor_user_id(x_actor_user_id)


def require_actor(x_actor_user_id: str | None = Header(default=None)) -> str:
    actor = parse_actor_user_id(x_actor_user_id)
    if actor is None:
        raise ValidationError("X-Actor-User-Id header is required")
    return actor
