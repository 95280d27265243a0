#!/usr/bin/env python3
"""Seed script to create the initial admin user and the default plan catalog"""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from sqlalchemy.orm import Session
from app.db.session import SessionLocal, get_engine
from app.models.user import User, UserRole
from app.core.security import create_access_token
from app.services.plan_catalog import seed_plans_if_empty


def seed_admin(email: str, name: str = "Admin"):
    get_engine()
    db: Session = SessionLocal()
    try:
        admin = db.query(User).filter(User.email == email).first()
        if admin:
            print(f"Admin user {email} already exists")
        else:
            admin = User(email=email, name=name, role=UserRole.ADMIN.value)
            db.add(admin)
            db.commit()
            print(f"Admin user created: {email}")

        if seed_plans_if_empty(db):
            print("Default plans seeded")

        print(f"Access token: {create_access_token({'id': admin.id})}")
    except Exception as e:
        db.rollback()
        print(f"Error seeding admin user: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: seed_admin.py <email> [name]")
        sys.exit(1)
    seed_admin(*sys.argv[1:3])
