from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import User


PROFILE_MUTABLE_FIELDS = {"name", "phone_number", "address", "avatar_url"}


def get_profile(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("Profile not found")
    return user


def update_profile(user_id: int, patch: dict) -> User:
    """Apply whitelisted profile fields; unknown keys are ignored."""
    user = get_profile(user_id)
    for key, value in patch.items():
        if key not in PROFILE_MUTABLE_FIELDS:
            continue
        if isinstance(value, str):
            value = value.strip() or None
        setattr(user, key, value)
    db.session.commit()
    return user


def search_profiles(query: str, limit: int = 10) -> list[User]:
    """Admin lookup by name or email (case-insensitive substring)."""
    query = (query or "").strip()
    if not query:
        return []
    pattern = f"%{query}%"
    return (
        db.session.query(User)
        .filter(db.or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        .order_by(User.name.asc(), User.id.asc())
        .limit(max(1, min(limit, 50)))
        .all()
    )
