"""Initialize the database and seed an admin account."""

from pathlib import Path

from sqlalchemy.orm import Session

from authentication.auth import get_password_hash
from models.config import settings
from repositories.database import Base, SessionLocal, engine
from repositories.db_models import User, UserRole
from repositories.user_repository import UserRepository


def seed_admin(db: Session, email: str, password: str) -> User | None:
    """Create the admin account unless it already exists.

    Returns:
        The new admin, or None when nothing was created.
    """
    if not email or not password:
        print("[SKIP] ADMIN_EMAIL/ADMIN_PASSWORD not set; no admin created")
        return None

    repo = UserRepository(db)
    if repo.email_exists(email):
        print(f"[SKIP] Admin {email} already exists")
        return None

    admin = User(
        name="Administrator",
        email=email.strip().lower(),
        phone="0000000000",
        hashed_password=get_password_hash(password),
        role=UserRole.ADMIN,
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    print("[OK] Admin user created")
    print(f"  Email: {admin.email}")
    print("  Password: (from ADMIN_PASSWORD in .env)")
    print("  IMPORTANT: Change this password in production!")
    return admin


def init_db() -> None:
    """Create tables and seed default data."""
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_admin(db, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
        print("\n[OK] Database initialization complete!")
    except Exception as e:
        print(f"Error initializing database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
