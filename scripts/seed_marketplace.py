#!/usr/bin/env python3
"""
DesignDesk Development Seed

Creates the schema (SQLite/dev only), a few task categories, an admin, a
client with credits, and a handful of approved freelancers with varied
skills, timezones and experience so task creation has someone to rank.
"""

import argparse
import json
import sys
import uuid
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.models import Base, engine, SessionLocal, User, FreelancerProfile, TaskCategory  # noqa: E402

CATEGORIES = [
    ("Logo Design", "logo-design", 3),
    ("Social Media", "social-media", 1),
    ("Brand Identity", "brand-identity", 5),
    ("Illustration", "illustration", 3),
]

FREELANCERS = [
    # name, timezone, level, rating, completed, skills, preferred categories
    ("Ana Duarte", "Europe/Lisbon", "SENIOR", 4.8, 64, ["logo", "branding", "illustrator"], ["logo-design"]),
    ("Kenji Mori", "Asia/Tokyo", "EXPERT", 4.9, 180, ["illustration", "procreate", "3d"], ["illustration"]),
    ("Maya Patel", "America/New_York", "MID", 4.3, 22, ["social media", "canva", "photoshop"], ["social-media"]),
    ("Leo Brandt", "Europe/Berlin", "JUNIOR", 0.0, 0, ["photoshop", "figma"], []),
]


def seed(client_credits: int) -> None:
    db = SessionLocal()
    now = datetime.utcnow()
    try:
        for name, slug, credits in CATEGORIES:
            if not db.query(TaskCategory).filter(TaskCategory.slug == slug).first():
                db.add(TaskCategory(id=str(uuid.uuid4()), name=name, slug=slug, base_credits=credits, created_at=now))

        def ensure_user(name: str, email: str, role: str, credits: int = 0) -> User:
            user = db.query(User).filter(User.email == email).first()
            if user is None:
                user = User(id=str(uuid.uuid4()), name=name, email=email, role=role, credits=credits,
                            created_at=now, updated_at=now)
                db.add(user)
                db.flush()
            return user

        ensure_user("Admin", "admin@designdesk.local", "ADMIN")
        client = ensure_user("Demo Client", "client@designdesk.local", "CLIENT", client_credits)

        for name, tz, level, rating, completed, skills, categories in FREELANCERS:
            email = f"{name.split()[0].lower()}@designdesk.local"
            user = ensure_user(name, email, "FREELANCER")
            if db.query(FreelancerProfile).filter(FreelancerProfile.user_id == user.id).first():
                continue
            db.add(FreelancerProfile(
                user_id=user.id,
                status="APPROVED",
                availability=True,
                timezone=tz,
                experience_level=level,
                rating=rating,
                completed_tasks=completed,
                skills_json=json.dumps(skills),
                preferred_categories_json=json.dumps(categories),
                created_at=now,
                updated_at=now
            ))

        db.commit()
        print(f"Seeded {len(CATEGORIES)} categories and {len(FREELANCERS)} freelancers")
        print(f"Client id: {client.id} (credits={client.credits})")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Seed a development DesignDesk database")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create tables directly from the models (dev only; use alembic elsewhere)"
    )
    parser.add_argument(
        "--client-credits",
        type=int,
        default=50,
        help="Starting credits for the demo client. Default: 50"
    )
    args = parser.parse_args()

    if args.create_schema:
        Base.metadata.create_all(bind=engine)
    seed(args.client_credits)


if __name__ == "__main__":
    main()
