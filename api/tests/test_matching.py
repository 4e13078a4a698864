from dataclasses import replace
from datetime import datetime, timezone

import pytest

from matchcore.errors import NotFoundError, ValidationError
from matchcore.models import UserPersonal
from matchcore.services import assembler, matching
from matchcore.services.scoring import NEUTRAL_SCORE

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)

EXPECTATIONS = {
    "age_from": 25,
    "age_to": 30,
    "marital_status": ["Never Married"],
    "alcohol": "no",
    "education_levels": ["Masters"],
    "community": ["Hindu"],
    "countries": ["India"],
    "states": ["Gujarat"],
    "professions": ["Any"],
    "diet": ["Vegetarian"],
}


def _good(make_user, user_id, gender="female", hiv="no", personal=None, education=None):
    return make_user(
        user_id,
        gender=gender,
        personal=personal
        or {
            "religion": "Hindu",
            "sub_caste": "Patel",
            "city": "Ahmedabad",
            "state": "Gujarat",
            "country": "India",
            "marital_status": "Never Married",
        },
        health={"diet": "Vegetarian", "is_alcoholic": False, "hiv_status": hiv},
        education=education or {"highest_level": "Masters"},
        profession={"occupation": "Architect"},
    )


@pytest.fixture
def me(make_user):
    return make_user(
        "me",
        gender="male",
        expectations=EXPECTATIONS,
        health={"hiv_status": "no"},
        profile={"favorite_ids": ["fav"], "compare_ids": []},
    )


def _ids(rows):
    return [r["user"]["userId"] for r in rows]


def test_recommendations_are_filtered_and_ranked(me, make_user, block, connect):
    _good(make_user, "c2")
    _good(make_user, "c1")
    _good(make_user, "c3", education={"highest_level": "Diploma"})
    _good(
        make_user,
        "poor",
        personal={"religion": "Jain", "state": "Ontario", "country": "Canada", "marital_status": "Divorced"},
    )
    _good(make_user, "man", gender="male")
    _good(make_user, "blocked")
    _good(make_user, "blocker")
    _good(make_user, "fav")
    _good(make_user, "connected")
    _good(make_user, "undisclosed", hiv=None)
    block("me", "blocked")
    block("blocker", "me")
    connect("connected", "me")

    rows = matching.find_matching_users("me", now=NOW)

    assert _ids(rows) == ["c1", "c2", "c3"]
    assert [r["scoreDetail"]["score"] for r in rows] == [100.0, 100.0, 95.5]


def test_recommendation_limit_and_threshold(me, make_user):
    _good(make_user, "c1")
    _good(make_user, "c2", education={"highest_level": "Diploma"})

    assert _ids(matching.find_matching_users("me", limit=1, now=NOW)) == ["c1"]
    assert _ids(matching.find_matching_users("me", min_score=99, now=NOW)) == ["c1"]


def test_recommendations_need_a_known_seeker(make_user):
    with pytest.raises(NotFoundError):
        matching.find_matching_users("ghost", now=NOW)


def test_compute_match_score(me, make_user):
    _good(make_user, "c1")
    detail = matching.compute_match_score("me", "c1", now=NOW)
    assert detail.score == 100.0
    assert "Same state" in detail.reasons
    assert detail.breakdown["age"] == 15.0


def test_compute_match_score_follows_evaluation_date(me, make_user):
    _good(make_user, "c1")
    assert matching.compute_match_score("me", "c1", now=NOW).breakdown["age"] == 15.0

    later = datetime(2034, 6, 15, 12, 0, tzinfo=timezone.utc)
    detail = matching.compute_match_score("me", "c1", now=later)
    assert detail.breakdown["age"] == 3.0
    assert "Age close to preferred range" in detail.reasons


def test_compute_match_score_follows_store_updates(me, make_user, store):
    _good(make_user, "c1")
    assert "Same state" in matching.compute_match_score("me", "c1", now=NOW).reasons

    with store() as db:
        db.get(UserPersonal, "c1").state = "Kerala"
        db.commit()

    detail = matching.compute_match_score("me", "c1", now=NOW)
    assert "Same state" not in detail.reasons
    assert "Same country" in detail.reasons


def test_compute_match_score_uses_hydrated_views(me, make_user, monkeypatch):
    _good(make_user, "c1")
    views = assembler.assemble(["me", "c1"])
    assert "Same state" in matching.compute_match_score("me", "c1", now=NOW).reasons

    def _no_assembly(*args, **kwargs):
        raise AssertionError("views were supplied")

    monkeypatch.setattr(assembler, "assemble", _no_assembly)
    assert matching.compute_match_score("me", "c1", hydrated=views, now=NOW).score == 100.0

    moved = replace(views["c1"], personal=replace(views["c1"].personal, state="Kerala"))
    detail = matching.compute_match_score("me", "c1", hydrated={**views, "c1": moved}, now=NOW)
    assert "Same state" not in detail.reasons
    assert detail.breakdown["location"] == 12.0


def test_compute_match_score_missing_parties(me, make_user):
    _good(make_user, "c1")
    with pytest.raises(NotFoundError):
        matching.compute_match_score("me", "ghost", now=NOW)
    with pytest.raises(NotFoundError):
        matching.compute_match_score("ghost", "c1", now=NOW)
    with pytest.raises(ValidationError):
        matching.compute_match_score("me", "", now=NOW)


def test_missing_expectations_give_neutral_score(make_user):
    make_user("plain", gender="male")
    _good(make_user, "c1")
    assert matching.compute_match_score("plain", "c1", now=NOW) == NEUTRAL_SCORE


def test_dashboard_summary(me, make_user, connect):
    _good(make_user, "c1")
    _good(make_user, "c2")
    connect("me", "c1")
    connect("me", "c2", status="accepted")
    connect("c2", "me")
    matching.add_compare_profiles("me", ["c1", "c2"])

    summary = matching.dashboard_summary("me", now=NOW)
    assert summary["userId"] == "me"
    assert summary["interestSentCount"] == 1
    assert summary["compareCount"] == 2
    assert summary["healthDisclosed"] is True
    assert summary["age"] == 28

    with pytest.raises(NotFoundError):
        matching.dashboard_summary("ghost", now=NOW)


@pytest.mark.parametrize("raw", ["", "   ", None, "bad id!", "x" * 37, "-leading"])
def test_validate_user_id_rejects(raw):
    with pytest.raises(ValidationError):
        matching.validate_user_id(raw)


def test_validate_user_id_accepts_uuid_and_slugs():
    assert matching.validate_user_id(" 3f2b8c1e-0d4a-4e7b-9a51-2c7d8e9f0a1b ") == "3f2b8c1e-0d4a-4e7b-9a51-2c7d8e9f0a1b"
    assert matching.validate_user_id("user_01") == "user_01"


def test_blocked_pair_is_not_scored(me, make_user, block):
    _good(make_user, "c1")
    block("c1", "me")
    with pytest.raises(NotFoundError):
        matching.compute_match_score("me", "c1", now=NOW)
