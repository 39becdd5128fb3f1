#!/usr/bin/env python3
"""
Script to create an admin user.
"""
import sys
from pathlib import Path

# Add parent directory to the system path
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.connection import Database
from database.models import UserRole
from services.auth_service import CredentialStore
from core.exceptions import BoardExamError
import config


def create_admin():
    """Create an admin user."""
    db = Database(
        database_url=config.DATABASE_URL,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW
    )
    db.bootstrap(
        attempts=config.DB_BOOTSTRAP_RETRIES,
        delay_seconds=config.DB_BOOTSTRAP_RETRY_DELAY
    )

    print("Creating admin user...")
    print("=" * 50)

    username = input("Username: ").strip()
    email = input("Email: ").strip()
    password = input("Password: ").strip()

    if not username or not email or not password:
        print("Error: Username, email, and password are required")
        sys.exit(1)

    try:
        with db.get_session() as session:
            user = CredentialStore(session).create_user(
                username=username,
                email=email,
                password=password,
                role=UserRole.ADMIN
            )
            print("\n✓ Admin user created successfully!")
            print(f"  Username: {user.username}")
            print(f"  Email: {user.email}")
            print(f"  Role: {user.role.value}")
    except BoardExamError as e:
        print(f"\n✗ Error: {e.message}")
        sys.exit(1)
    finally:
        db.engine.dispose()


if __name__ == "__main__":
    create_admin()
