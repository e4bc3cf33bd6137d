"""SQLAlchemy ORM models."""

from rebooked.models.ai_pack import AIPackCache, AIPackRequest, AISetting
from rebooked.models.base import Base
from rebooked.models.listings import Accommodation, Bursary
from rebooked.models.user_role import UserRole

__all__ = [
    "Base",
    "Accommodation",
    "Bursary",
    "AIPackCache",
    "AIPackRequest",
    "AISetting",
    "UserRole",
]
