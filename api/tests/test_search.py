from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from matchcore.errors import NotFoundError
from matchcore.services import matching

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _filters(**kwargs):
    base = dict.fromkeys(
        (
            "name",
            "custom_id",
            "gender",
            "new_profile",
            "age_from",
            "age_to",
            "height_from",
            "height_to",
            "religion",
            "caste",
            "city",
            "profession",
            "sort_by",
        )
    )
    base.update(kwargs)
    return SimpleNamespace(**base)


def _ids(result):
    return [row["user"]["userId"] for row in result["data"]]


def test_total_is_independent_of_page_size(make_user):
    for i in range(12):
        make_user(f"f{i:02d}", created_at=NOW - timedelta(hours=i))

    first = matching.search(_filters(gender="female"), page=1, limit=5, now=NOW)
    third = matching.search(_filters(gender="female"), page=3, limit=2, now=NOW)
    last = matching.search(_filters(gender="female"), page=3, limit=5, now=NOW)

    assert first["pagination"] == {"page": 1, "limit": 5, "total": 12, "hasMore": True}
    assert third["pagination"]["total"] == 12
    assert _ids(third) == ["f04", "f05"]
    assert len(last["data"]) == 2
    assert last["pagination"]["hasMore"] is False


def test_newest_breaks_ties_by_user_id(make_user):
    make_user("c", created_at=NOW - timedelta(days=1))
    make_user("a", created_at=NOW - timedelta(days=1))
    make_user("b", created_at=NOW - timedelta(days=1))
    make_user("z", created_at=NOW)

    result = matching.search(_filters(sort_by="newest"), now=NOW)
    assert _ids(result) == ["z", "a", "b", "c"]


def test_age_sort_is_birth_date_descending(make_user):
    make_user("old", date_of_birth=date(1985, 1, 1))
    make_user("young", date_of_birth=date(2000, 1, 1))
    make_user("mid", date_of_birth=date(1993, 1, 1))

    result = matching.search(_filters(sort_by="age"), now=NOW)
    assert _ids(result) == ["young", "mid", "old"]


def test_age_sort_breaks_ties_by_user_id(make_user):
    for uid in ("twin_c", "twin_a", "twin_b"):
        make_user(uid, date_of_birth=date(1994, 3, 3))
    make_user("elder", date_of_birth=date(1980, 3, 3))

    result = matching.search(_filters(sort_by="age"), now=NOW)
    assert _ids(result) == ["twin_a", "twin_b", "twin_c", "elder"]


def test_age_sort_puts_unknown_birth_date_last(make_user):
    make_user("undated_a", date_of_birth=None)
    make_user("old", date_of_birth=date(1985, 1, 1))
    make_user("undated_b", date_of_birth=None)
    make_user("young", date_of_birth=date(2000, 1, 1))

    result = matching.search(_filters(sort_by="age"), now=NOW)
    assert _ids(result) == ["young", "old", "undated_a", "undated_b"]
    assert result["data"][-1]["user"]["age"] is None

    page = matching.search(_filters(sort_by="age"), page=2, limit=2, now=NOW)
    assert _ids(page) == ["undated_a", "undated_b"]


def test_age_window_boundary_in_store(make_user):
    make_user("edge", date_of_birth=date(1989, 6, 15))
    make_user("outside", date_of_birth=date(1989, 6, 14))
    make_user("young_edge", date_of_birth=date(1999, 6, 15))
    make_user("too_young", date_of_birth=date(1999, 6, 16))

    result = matching.search(_filters(age_from=25, age_to=35), now=NOW)
    assert sorted(_ids(result)) == ["edge", "young_edge"]


def test_blocks_in_both_directions_and_self_are_hidden(make_user, block):
    make_user("seeker", gender="male")
    make_user("blocked_by_me")
    make_user("blocked_me")
    make_user("visible")
    make_user("other_man", gender="male")
    block("seeker", "blocked_by_me")
    block("blocked_me", "seeker")

    result = matching.search(_filters(), auth_user_id="seeker", now=NOW)
    assert _ids(result) == ["visible"]

    same_gender = matching.search(_filters(gender="male"), auth_user_id="seeker", now=NOW)
    assert _ids(same_gender) == ["other_man"]


def test_privacy_restricts_affirmative_seeker(make_user):
    make_user("seeker", gender="male", health={"hiv_status": "yes"})
    make_user("one", health={"hiv_status": "1"})
    make_user("true", health={"hiv_status": "True"})
    make_user("neg", health={"hiv_status": "no"})
    make_user("blank", health={"hiv_status": None})
    make_user("no_record")

    result = matching.search(_filters(), auth_user_id="seeker", now=NOW)
    assert sorted(_ids(result)) == ["one", "true"]


def test_privacy_restricts_negative_seeker(make_user):
    make_user("seeker", gender="male", health={"hiv_status": "0"})
    make_user("pos", health={"hiv_status": "yes"})
    make_user("neg", health={"hiv_status": "false"})
    make_user("no_record")

    result = matching.search(_filters(), auth_user_id="seeker", now=NOW)
    assert _ids(result) == ["neg"]


def test_seeker_without_disclosure_sees_everyone(make_user):
    make_user("seeker", gender="male")
    make_user("pos", health={"hiv_status": "yes"})
    make_user("neg", health={"hiv_status": "no"})
    make_user("no_record")

    result = matching.search(_filters(), auth_user_id="seeker", now=NOW)
    assert sorted(_ids(result)) == ["neg", "no_record", "pos"]


def test_seeker_with_unset_disclosure_is_not_treated_as_negative(make_user):
    make_user("seeker", gender="male", health={"hiv_status": None, "diet": "Vegetarian"})
    make_user("pos", health={"hiv_status": "true"})
    make_user("neg", health={"hiv_status": "0"})

    result = matching.search(_filters(), auth_user_id="seeker", now=NOW)
    assert sorted(_ids(result)) == ["neg", "pos"]


def test_height_filter_with_absent_height(make_user):
    make_user("tall", personal={"height": 170.0})
    make_user("unknown")

    assert _ids(matching.search(_filters(height_from=150), now=NOW)) == ["tall"]
    assert sorted(_ids(matching.search(_filters(height_to=200), now=NOW))) == ["tall", "unknown"]


def test_text_filters(make_user):
    make_user("hindu", personal={"religion": "Hindu", "sub_caste": "Patel", "city": "Pune"})
    make_user("jain", personal={"religion": "Jain", "city": "Mumbai"}, profession={"organization": "Acme Corp"})
    make_user("pct", first_name="100%", personal={"religion": "Sikh"})

    assert _ids(matching.search(_filters(religion="HIN"), now=NOW)) == ["hindu"]
    assert _ids(matching.search(_filters(caste="pat"), now=NOW)) == ["hindu"]
    assert _ids(matching.search(_filters(city="mum"), now=NOW)) == ["jain"]
    assert _ids(matching.search(_filters(profession="acme"), now=NOW)) == ["jain"]
    assert _ids(matching.search(_filters(name="%"), now=NOW)) == ["pct"]


def test_custom_id_is_exact_ignoring_case(make_user):
    make_user("a", custom_id="MC00012")
    make_user("b", custom_id="MC000123")

    assert _ids(matching.search(_filters(custom_id="mc00012"), now=NOW)) == ["a"]


def test_inactive_and_deleted_are_never_listed(make_user):
    make_user("live")
    make_user("paused", is_active=False)
    make_user("gone", is_deleted=True)

    assert _ids(matching.search(_filters(), now=NOW)) == ["live"]


def test_new_profile_window(make_user):
    make_user("fresh", created_at=NOW - timedelta(days=2))
    make_user("stale", created_at=NOW - timedelta(days=10))

    assert _ids(matching.search(_filters(new_profile="last1week"), now=NOW)) == ["fresh"]
    assert len(matching.search(_filters(new_profile="last1month"), now=NOW)["data"]) == 2


def test_listing_carries_score_and_favorite_flag(make_user):
    make_user(
        "seeker",
        gender="male",
        expectations={"age_from": 25, "age_to": 30},
        profile={"favorite_ids": ["liked"], "compare_ids": []},
    )
    make_user("liked", personal={"city": "Pune"}, profile={"closer_photo_url": "https://img/x.jpg"})

    (row,) = matching.search(_filters(), auth_user_id="seeker", now=NOW)["data"]
    assert row["user"]["isFavorite"] is True
    assert row["user"]["city"] == "Pune"
    assert row["user"]["age"] == 28
    assert row["user"]["closerPhoto"] == {"url": "https://img/x.jpg"}
    assert row["scoreDetail"]["score"] == 15.0
    assert row["scoreDetail"]["reasons"] == ["Age within preferred range"]


def test_anonymous_listing_has_no_score(make_user):
    make_user("x")
    (row,) = matching.search(_filters(), now=NOW)["data"]
    assert row["scoreDetail"] == {"score": None, "reasons": []}


def test_unknown_seeker_is_not_found(make_user):
    with pytest.raises(NotFoundError):
        matching.search(_filters(), auth_user_id="ghost", now=NOW)
