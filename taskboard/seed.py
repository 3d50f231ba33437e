import structlog

from .config import settings
from .models import User
from .passwords import hash_password
from .storage import DuplicateUsername, Storage

logger = structlog.get_logger()


def seed_default_user(storage: Storage) -> User:
    """Create the demo account if it does not exist yet."""
    existing = storage.get_user_by_username(settings.default_username)
    if existing is not None:
        logger.info("taskboard.seed_skipped", username=existing.username)
        return existing
    try:
        user = storage.create_user(settings.default_username, hash_password(settings.default_password))
    except DuplicateUsername:
        # created concurrently between the lookup and the insert
        return storage.get_user_by_username(settings.default_username)
    logger.info("taskboard.seeded_user", username=user.username, user_id=user.id)
    return user
