"""
NGO Portal - Database Seed Script

Creates the initial superadmin for development, plus optional demo
members and a demo hub.

Usage:
    python -m scripts.seed_users
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import datetime
from sqlmodel import Session, select

from ngo_portal.config import settings
from ngo_portal.database import get_engine, init_db
from ngo_portal.auth.models import User, GlobalRole
from ngo_portal.auth.password import generate_temporary_password, make_password_hash
from ngo_portal.hubs.models import Hub


SUPERADMIN_EMAIL = "superadmin@ngo.local"


def seed_superadmin():
    """Create default superadmin with a generated password."""
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)

    with Session(engine) as session:
        existing = session.exec(
            select(User).where(User.global_role == GlobalRole.SUPERADMIN)
        ).first()

        if existing:
            print(f"Superadmin already exists: {existing.email}")
            return

        password = generate_temporary_password()
        admin = User(
            email=SUPERADMIN_EMAIL,
            password_hash=make_password_hash(password),
            name="Portal Superadmin",
            global_role=GlobalRole.SUPERADMIN,
            email_verified=True,
        )

        session.add(admin)
        session.commit()

        print("Superadmin created successfully!")
        print(f"  Email: {SUPERADMIN_EMAIL}")
        print(f"  Password: {password}")
        print("  Change it after first sign-in.")


def seed_demo_data():
    """Create demo members and one hub."""
    engine = get_engine(settings.DATABASE_URL)
    init_db(engine)

    demo_users = [
        ("member@ngo.local", "Member@2024", "Demo Member", GlobalRole.MEMBER),
        ("admin@ngo.local", "Admin@2024", "Demo Admin", GlobalRole.ADMIN),
    ]

    with Session(engine) as session:
        creator = None
        for email, password, name, role in demo_users:
            existing = session.exec(select(User).where(User.email == email)).first()
            if existing:
                print(f"User {email} already exists.")
                creator = creator or existing
                continue

            user = User(
                email=email,
                password_hash=make_password_hash(password),
                name=name,
                global_role=role,
            )
            session.add(user)
            session.flush()
            if role == GlobalRole.ADMIN:
                creator = user
            print(f"Created user: {email} ({role.value})")

        if creator is not None and not session.exec(select(Hub)).first():
            session.add(Hub(
                name="Education",
                description="Literacy and school support programs",
                objectives="Run weekly tutoring sessions",
                created_at=datetime.utcnow(),
                created_by=creator.id,
            ))
            print("Created hub: Education")

        session.commit()


if __name__ == "__main__":
    print("=" * 50)
    print("NGO Portal - User Seed Script")
    print("=" * 50)

    seed_superadmin()

    print()
    response = input("Create demo members and hub? (y/n): ")
    if response.lower() == "y":
        seed_demo_data()

    print()
    print("Done!")
