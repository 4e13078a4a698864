import logging
import random
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete

from ..models import (
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

logger = logging.getLogger(__name__)

FIRST_NAMES = {
    "male": ["Arjun", "Rohan", "Vikram", "Karan", "Aditya", "Nikhil", "Rahul", "Siddharth"],
    "female": ["Priya", "Ananya", "Kavya", "Neha", "Isha", "Meera", "Pooja", "Riya"],
}
LAST_NAMES = ["Patel", "Shah", "Mehta", "Iyer", "Reddy", "Nair", "Desai", "Joshi"]
RELIGIONS = {"Hindu": ["Brahmin", "Patel", "Kshatriya"], "Jain": ["Shwetambar", "Digambar"], "Sikh": ["Jat", "Khatri"]}
LOCATIONS = [
    ("Ahmedabad", "Gujarat", "India"),
    ("Mumbai", "Maharashtra", "India"),
    ("Pune", "Maharashtra", "India"),
    ("Bengaluru", "Karnataka", "India"),
    ("Toronto", "Ontario", "Canada"),
]
EDUCATION = ["Bachelors", "Masters", "PhD", "Diploma"]
FIELDS_OF_STUDY = ["Engineering", "Medicine", "Commerce", "Arts", "Law"]
OCCUPATIONS = ["Software Engineer", "Doctor", "Chartered Accountant", "Teacher", "Architect", "Lawyer"]
DIETS = ["Vegetarian", "Non-Vegetarian", "Eggetarian", "Jain"]
MARITAL = ["Never Married", "Divorced", "Widowed"]
# Mixed encodings of the same yes/no value.
HIV_ENCODINGS = ["no", "No", "false", "0", "yes", "1", None, ""]


def _birth_date(rng: random.Random, today: date) -> date:
    return today - timedelta(days=rng.randint(21 * 365, 40 * 365))


def _profile_rows(rng: random.Random, now: datetime, idx: int) -> list[Any]:
    gender = rng.choice(["male", "female"])
    uid = str(uuid.uuid4())
    religion = rng.choice(list(RELIGIONS))
    city, state, country = rng.choice(LOCATIONS)
    rows: list[Any] = [
        UserAccount(
            id=uid,
            first_name=rng.choice(FIRST_NAMES[gender]),
            last_name=rng.choice(LAST_NAMES),
            custom_id=f"MC{idx:05d}",
            gender=gender,
            date_of_birth=_birth_date(rng, now.date()),
            is_active=rng.random() > 0.05,
            created_at=now - timedelta(days=rng.randint(0, 120), minutes=idx),
        ),
        UserPersonal(
            user_id=uid,
            height=rng.choice([None, float(rng.randint(150, 190))]),
            weight=float(rng.randint(50, 90)),
            religion=religion,
            sub_caste=rng.choice(RELIGIONS[religion]),
            city=city,
            state=state,
            country=country,
            marital_status=rng.choices(MARITAL, weights=[0.85, 0.1, 0.05], k=1)[0],
        ),
        UserFamily(user_id=uid, family_type=rng.choice(["Joint", "Nuclear"])),
        UserHealth(
            user_id=uid,
            diet=rng.choice(DIETS),
            is_alcoholic=rng.random() < 0.3,
            is_tobacco_user=rng.random() < 0.1,
            hiv_status=rng.choice(HIV_ENCODINGS),
        ),
        UserEducation(user_id=uid, highest_level=rng.choice(EDUCATION), field_of_study=rng.choice(FIELDS_OF_STUDY)),
        UserProfession(user_id=uid, occupation=rng.choice(OCCUPATIONS), organization=f"Org {rng.randint(1, 20)}"),
        UserProfile(user_id=uid, closer_photo_url=f"https://img.example.com/{uid}.jpg", favorite_ids=[], compare_ids=[]),
    ]
    if rng.random() < 0.8:
        age_from = rng.randint(21, 30)
        rows.append(
            UserExpectations(
                user_id=uid,
                age_from=age_from,
                age_to=age_from + rng.randint(4, 10),
                marital_status=["Never Married"],
                education_levels=rng.sample(EDUCATION, k=2),
                community=[religion],
                countries=[country],
                states=[] if rng.random() < 0.5 else [state],
                professions=["Any"],
                diet=[rng.choice(DIETS)],
                alcohol=rng.choice(["no", "occasionally", "no preference"]),
            )
        )
    return rows


def seed_demo_profiles(db, n_users: int = 100, reset: bool = False, seed: int = 42) -> dict[str, int]:
    rng = random.Random(seed)
    now = datetime.now(timezone.utc)
    if reset:
        for model in (
            ConnectionRequest,
            UserBlock,
            UserExpectations,
            UserProfile,
            UserProfession,
            UserEducation,
            UserHealth,
            UserFamily,
            UserPersonal,
            UserAccount,
        ):
            db.execute(delete(model))

    accounts: list[UserAccount] = []
    for idx in range(n_users):
        rows = _profile_rows(rng, now, idx)
        accounts.append(rows[0])
        db.add_all(rows)
    db.flush()

    blocks = 0
    requests = 0
    for acc in accounts:
        other = rng.choice(accounts)
        if other.id == acc.id:
            continue
        if rng.random() < 0.05:
            db.add(UserBlock(blocker_id=acc.id, blocked_id=other.id))
            blocks += 1
        elif rng.random() < 0.2:
            db.add(ConnectionRequest(sender_id=acc.id, receiver_id=other.id, status=rng.choice(["pending", "accepted"])))
            requests += 1
    db.commit()

    summary = {"users": len(accounts), "blocks": blocks, "connection_requests": requests}
    logger.info("[seed] %s", summary)
    return summary
