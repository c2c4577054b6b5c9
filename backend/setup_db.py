#!/usr/bin/env python3
"""
Callout Database Setup Script

Creates the tables in CALLOUT_DATABASE_URL and, with --seed, a small demo
organization: two groups, three areas (one unassigned) and a few
responders who can log in with password "password123".

Usage:
    cd backend
    python3 setup_db.py [--seed]
"""

import argparse

from database import Base, SessionLocal, engine
from jwt_auth import hash_password
from models import Area, Group, Responder, Role

DEMO_PASSWORD = "password123"


def create_schema():
    Base.metadata.create_all(bind=engine)
    print(f"Tables created: {', '.join(sorted(Base.metadata.tables))}")


def seed_demo(db):
    if db.query(Group).count():
        print("Groups already exist - skipping demo seed")
        return

    north = Group(name="North Squad")
    south = Group(name="South Squad")
    db.add_all([north, south])
    db.flush()

    db.add_all([
        Area(name="Riverside", group_id=north.id),
        Area(name="Hilltop", group_id=south.id),
        Area(name="Industrial Park", group_id=None),
    ])

    password_hash = hash_password(DEMO_PASSWORD)
    db.add_all([
        Responder(name="Admin", email="admin@callout.local", role=Role.ADMIN.value,
                  password_hash=password_hash),
        Responder(name="Sato", email="sato@callout.local", role=Role.LEADER.value,
                  group_id=north.id, password_hash=password_hash),
        Responder(name="Suzuki", email="suzuki@callout.local", role=Role.MEMBER.value,
                  group_id=north.id, password_hash=password_hash),
        Responder(name="Tanaka", email="tanaka@callout.local", role=Role.MEMBER.value,
                  group_id=south.id, password_hash=password_hash),
    ])
    db.commit()
    print(f"Demo organization seeded (password: {DEMO_PASSWORD})")


def main():
    parser = argparse.ArgumentParser(description="Create Callout tables")
    parser.add_argument("--seed", action="store_true", help="Insert demo groups, areas and responders")
    args = parser.parse_args()

    print("=" * 60)
    print("Callout Database Setup")
    print("=" * 60)

    create_schema()
    if args.seed:
        db = SessionLocal()
        try:
            seed_demo(db)
        finally:
            db.close()


if __name__ == "__main__":
    main()
