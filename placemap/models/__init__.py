from placemap.models.users import UserAuth
from placemap.models.reviews import Review

__all__ = ["UserAuth", "Review"]
