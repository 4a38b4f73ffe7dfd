from azurite.models.ban import Ban
from azurite.models.comment import Comment
from azurite.models.game import Documentation, Game, GameRequest, Tag
from azurite.models.mod import Mod, ModDependency, ModFile, ModLike, ModTag
from azurite.models.notification import Notification
from azurite.models.user import PasswordResetToken, User, UserRole

__all__ = [
    "Ban",
    "Comment",
    "Documentation",
    "Game",
    "GameRequest",
    "Mod",
    "ModDependency",
    "ModFile",
    "ModLike",
    "ModTag",
    "Notification",
    "PasswordResetToken",
    "User",
    "UserRole",
]
