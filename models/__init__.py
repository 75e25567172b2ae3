"""ORM models exposed by the Trakn client."""
from .sync_operation import SyncOperationRow
from .user_profile import UserProfileRow
from .workout import WorkoutRow

__all__ = ["SyncOperationRow", "UserProfileRow", "WorkoutRow"]
