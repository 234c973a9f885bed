#!/usr/bin/env python3
"""
Standalone utility to provision the first SUPER_ADMIN account.
Run this script: python -m routes.auth.create_admin

Reads ADMIN_NAME, ADMIN_EMAIL and ADMIN_PASSWORD from the environment (.env).
Running it again is harmless: an existing account is promoted, never duplicated.
"""

import os
import sys
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.connection import SessionLocal, engine, Base
from db.models import User, UserRole
from services.user_service import find_user_by_email, normalize_email
from utils.passwords import hash_password


def create_super_admin(db: Session, name: str, email: str, password: str) -> Tuple[User, bool]:
    """Returns (user, created). An existing account keeps its password and is promoted."""
    existing = find_user_by_email(db, email)
    if existing:
        if existing.role != UserRole.SUPER_ADMIN:
            existing.role = UserRole.SUPER_ADMIN
            db.commit()
            db.refresh(existing)
        return existing, False

    admin_user = User(
        name=name,
        email=normalize_email(email),
        password_hash=hash_password(password),
        role=UserRole.SUPER_ADMIN,
        tasks_completed=0,
    )
    db.add(admin_user)
    db.commit()
    db.refresh(admin_user)
    return admin_user, True


def create_admin() -> int:
    name = os.getenv("ADMIN_NAME", "System Administrator")
    email = os.getenv("ADMIN_EMAIL")
    password = os.getenv("ADMIN_PASSWORD")
    if not email or not password:
        print("❌ ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        return 1

    print("🚀 Creating super admin user...")
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables verified")

    db = SessionLocal()
    try:
        user, created = create_super_admin(db, name, email, password)
        if created:
            print("🎉 SUPER ADMIN CREATED SUCCESSFULLY!")
        else:
            print("ℹ️  Account already exists; role set to SUPER_ADMIN")
        print(f"   Email: {user.email}")
        print(f"   Role: {user.role.value}")
        return 0
    except IntegrityError as e:
        db.rollback()
        print(f"❌ Database integrity error: {str(e)}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(create_admin())
