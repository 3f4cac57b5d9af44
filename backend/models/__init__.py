# models package init
# Ensure ORM models are importable from a single place.
from models.user import UserDB  # noqa: F401
