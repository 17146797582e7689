"""Use case for creating users."""

from sqlalchemy.orm import Session

from app.domain.entities import User
from app.infrastructure.repositories import UserRepository
from app.infrastructure.security import get_password_hash
from app.utils import utcnow


def create_user(session: Session, *, name: str, email: str, password: str) -> User:
    """Create a new user ensuring unique email addresses."""

    repository = UserRepository(session)
    email = email.strip().lower()

    if not name.strip():
        raise ValueError("Name is required")
    if "@" not in email:
        raise ValueError("A valid email address is required")
    if repository.get_by_email(email):
        raise ValueError("Email address is already registered")
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")

    user = User(
        id=None,
        name=name.strip(),
        email=email,
        password=get_password_hash(password),
        is_active=True,
        created_at=utcnow(),
    )
    return repository.create(user)
