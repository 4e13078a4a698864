import os
from datetime import date, datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from matchcore import repo
from matchcore.database import init_db
from matchcore.models import (
    ConnectionRequest,
    UserAccount,
    UserBlock,
    UserEducation,
    UserExpectations,
    UserFamily,
    UserHealth,
    UserPersonal,
    UserProfession,
    UserProfile,
)

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

_GROUP_MODELS = {
    "personal": UserPersonal,
    "family": UserFamily,
    "health": UserHealth,
    "education": UserEducation,
    "profession": UserProfession,
    "expectations": UserExpectations,
    "profile": UserProfile,
}


@pytest.fixture
def store(tmp_path, monkeypatch):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'store.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    init_db(bind=engine)
    session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    monkeypatch.setattr(repo, "SessionLocal", session_factory)
    yield session_factory
    engine.dispose()


@pytest.fixture
def make_user(store):
    def _make(
        user_id: str,
        gender: str = "female",
        date_of_birth: date | None = date(1996, 1, 1),
        created_at: datetime = NOW,
        first_name: str | None = None,
        last_name: str = "Shah",
        custom_id: str | None = None,
        is_active: bool = True,
        is_deleted: bool = False,
        **groups,
    ) -> str:
        with store() as db:
            db.add(
                UserAccount(
                    id=user_id,
                    first_name=first_name or user_id.title(),
                    last_name=last_name,
                    custom_id=custom_id,
                    gender=gender,
                    date_of_birth=date_of_birth,
                    created_at=created_at,
                    is_active=is_active,
                    is_deleted=is_deleted,
                )
            )
            for name, values in groups.items():
                if values is None:
                    continue
                db.add(_GROUP_MODELS[name](user_id=user_id, **values))
            db.commit()
        return user_id

    return _make


@pytest.fixture
def block(store):
    def _block(blocker_id: str, blocked_id: str) -> None:
        with store() as db:
            db.add(UserBlock(blocker_id=blocker_id, blocked_id=blocked_id))
            db.commit()

    return _block


@pytest.fixture
def connect(store):
    def _connect(sender_id: str, receiver_id: str, status: str = "pending") -> None:
        with store() as db:
            db.add(ConnectionRequest(sender_id=sender_id, receiver_id=receiver_id, status=status))
            db.commit()

    return _connect
