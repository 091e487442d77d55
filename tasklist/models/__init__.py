from .task import Task, TaskSection, utc_now
from .user import User

# Export all models for easy importing
__all__ = ["Task", "TaskSection", "User", "utc_now"]
