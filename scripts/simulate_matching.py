# scripts/simulate_matching.py
"""
Simulation script: generates a random pool of members and runs the cohort
builder on it in memory (no database, no HTTP calls).

    python scripts/simulate_matching.py --users 40 --seed 7
"""
import argparse
import logging
import random

from faker import Faker

from app.domain.cohorts import build_cohorts
from app.domain.models import CandidateProfile, GenderPreference
from app.domain.welcome import build_welcome_message

logger = logging.getLogger(__name__)

CITIES = ["Riyadh", "Jeddah", "Dammam", "Mecca"]
SPECIALTIES = [
    "Internal Medicine", "Surgery", "Pediatrics", "Cardiology",
    "Dermatology", "Emergency Medicine", "Radiology", "Orthopedics",
]
INTERESTS = [
    "AI", "Wellness", "Fitness", "Reading", "Travel", "Cooking",
    "Photography", "Sports", "Music", "Movies", "Gaming", "Art",
]
SLOTS = [
    "Thursday 4PM", "Friday 10AM", "Friday 6PM", "Saturday 2PM",
    "Saturday 7PM", "Sunday 10AM", "Sunday 4PM",
]


def generate_pool(count: int, rng: random.Random, fake: Faker):
    pool = []
    for i in range(count):
        gender = rng.choice(["male", "female"])
        pool.append(CandidateProfile(
            id=f"user_{i + 1}",
            first_name=fake.first_name_male() if gender == "male" else fake.first_name_female(),
            last_name=fake.last_name(),
            specialty=rng.choice(SPECIALTIES),
            city=CITIES[(i // 3) % len(CITIES)],
            gender=gender,
            gender_preference=rng.choice([
                GenderPreference.NO_PREFERENCE,
                GenderPreference.NO_PREFERENCE,
                GenderPreference.SAME_GENDER_PREFERRED,
                GenderPreference.MIXED_REQUIRED,
            ]),
            interests=rng.sample(INTERESTS, rng.randint(3, 6)),
            availability_slots=rng.sample(SLOTS, rng.randint(2, 5)),
        ))
    return pool


def run_simulation(users: int, seed: int, min_score: float):
    rng = random.Random(seed)
    fake = Faker()
    Faker.seed(seed)

    pool = generate_pool(users, rng, fake)
    groups = build_cohorts(pool, min_group_score=min_score)

    matched = sum(len(g) for g in groups)
    logger.info("%d groups, %d/%d members matched", len(groups), matched, len(pool))
    for g in groups:
        names = ", ".join(f"{m.first_name} ({m.specialty}, {m.city})" for m in g.members)
        logger.info("%s score=%.3f: %s", g.group_id, g.average_score, names)
    if groups:
        logger.info("Sample welcome message:\n%s", build_welcome_message(groups[0].members))
    return groups


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    parser = argparse.ArgumentParser(description="Simulate a weekly matching run")
    parser.add_argument("--users", type=int, default=40)
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--min-score", type=float, default=0.55)
    args = parser.parse_args()
    run_simulation(args.users, args.seed, args.min_score)
