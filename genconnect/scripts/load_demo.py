"""
Demo Data Loader

Loads the demo tutors, readings and availability from demo_seed.yaml plus a
handful of Faker-generated tutees, so the app has something to show.
Usage: python -m genconnect.scripts.load_demo [--reset] [--tutees 8]
"""
import asyncio
import argparse
import sys
from pathlib import Path

import yaml
from faker import Faker
from sqlalchemy import text

from genconnect.database import AsyncSessionLocal, init_db
from genconnect.models import AvailabilityWindow, Reading, TutorProfile, User
from genconnect.models.user import ROLE_TUTEE, ROLE_TUTOR, TECH_COMFORT_LEVELS
from genconnect.services.auth_service import hash_password

SEED_FILE = Path(__file__).parent / "demo_seed.yaml"

# Child tables first
TABLES = [
    "feedback", "tutor_reviews", "discussion_answers", "session_notes", "sessions",
    "availability_windows", "contact_requests", "tutor_profiles", "readings", "users",
]


def load_config(config_path: Path) -> dict:
    """Load demo configuration from YAML file"""
    try:
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"Warning: Seed file not found at {config_path}, nothing to load")
        return {}
    except yaml.YAMLError as e:
        print(f"Error parsing seed file: {e}")
        sys.exit(1)


async def clear_data():
    """Clear all existing data"""
    async with AsyncSessionLocal() as session:
        for table in TABLES:
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()
    print("✓ Cleared existing data")


def build_tutors(config: dict, password_hash: str) -> list:
    users = []
    for entry in config.get("tutors", []):
        user = User(
            email=entry["email"],
            password_hash=password_hash,
            name=entry["name"],
            role=ROLE_TUTOR,
            college=entry.get("college"),
            major=entry.get("major"),
            bio=entry.get("bio"),
        )
        user.tutor_profile = TutorProfile(
            age=entry.get("age"),
            industry=entry.get("industry"),
            specialties=entry.get("specialties", []),
            tutoring_style=entry.get("tutoring_style"),
            availability_hours=entry.get("availability_hours"),
            experience_years=entry.get("experience_years", 0),
        )
        users.append((user, entry.get("weekly_windows", [])))
    return users


def build_tutees(config: dict, password_hash: str, count: int, fake: Faker) -> list:
    tutees = []
    demo = config.get("demo_tutee")
    if demo:
        tutees.append(User(
            email=demo["email"],
            password_hash=password_hash,
            name=demo["name"],
            role=ROLE_TUTEE,
            tech_comfort_level=demo.get("tech_comfort_level", "beginner"),
        ))
    for _ in range(count):
        tutees.append(User(
            email=fake.unique.email(),
            password_hash=password_hash,
            name=fake.name(),
            role=ROLE_TUTEE,
            tech_comfort_level=fake.random_element(TECH_COMFORT_LEVELS),
            bio=fake.sentence(nb_words=12),
        ))
    return tutees


def build_readings(config: dict, fake: Faker) -> list:
    return [
        Reading(
            title=entry["title"],
            summary=entry.get("summary"),
            content=entry.get("content") or "\n\n".join(fake.paragraphs(nb=4)),
            difficulty_level=entry.get("difficulty_level", "easy"),
            topic_tags=entry.get("topic_tags"),
            discussion_questions=entry.get("discussion_questions", []),
        )
        for entry in config.get("readings", [])
    ]


async def load_demo(config: dict, tutee_count: int):
    """
    Insert demo users, readings and weekly availability.

    Args:
        config: Parsed seed file
        tutee_count: Number of Faker tutees in addition to the demo tutee
    """
    fake = Faker()
    Faker.seed(config.get("random_seed", 42))
    password_hash = hash_password(str(config.get("password", "demo123")))

    async with AsyncSessionLocal() as session:
        tutors = build_tutors(config, password_hash)
        for user, _ in tutors:
            session.add(user)
        tutees = build_tutees(config, password_hash, tutee_count, fake)
        session.add_all(tutees)
        readings = build_readings(config, fake)
        session.add_all(readings)
        await session.flush()

        windows = 0
        for user, weekly_windows in tutors:
            for window in weekly_windows:
                session.add(AvailabilityWindow(
                    tutor_id=user.id,
                    day_of_week=window["day_of_week"],
                    start_time=window["start_time"],
                    end_time=window["end_time"],
                    topics=window.get("topics"),
                ))
                windows += 1

        await session.commit()

    print(f"  Created {len(tutors)} tutors, {len(tutees)} tutees, {len(readings)} readings")
    print(f"  Created {windows} weekly availability windows")


async def run(args):
    config = load_config(SEED_FILE)
    await init_db()
    if args.reset:
        await clear_data()
    tutee_count = args.tutees if args.tutees is not None else config.get("num_generated_tutees", 8)
    await load_demo(config, tutee_count)
    print("\n✅ Demo data loaded")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load GenConnect demo data")
    parser.add_argument("--reset", action="store_true", help="Delete all existing rows first")
    parser.add_argument("--tutees", type=int, default=None, help="Number of generated tutees")

    args = parser.parse_args()
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
