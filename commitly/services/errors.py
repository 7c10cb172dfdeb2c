"""Commitly service exceptions."""


class CommitlyError(Exception):
    """Base exception for Commitly services."""


class StoreError(CommitlyError):
    """A profile store call failed."""


class DuplicateProfileError(StoreError):
    """A profile for this userId already exists."""

    def __init__(self, user_id: str):
        super().__init__(f"Profile already exists for user {user_id}")
        self.user_id = user_id


class ProfileNotFoundError(CommitlyError):
    """No profile exists for the given userId."""

    def __init__(self, user_id: str):
        super().__init__(f"Profile not found for user {user_id}")
        self.user_id = user_id


class GoalOutOfRangeError(CommitlyError, ValueError):
    """Daily goal outside the accepted range."""

    def __init__(self, goal: int, minimum: int, maximum: int):
        super().__init__(f"Daily goal must be between {minimum} and {maximum}, got {goal}")
        self.goal = goal


class GitHubDataError(CommitlyError):
    """GitHub REST/GraphQL or streak aggregator call failed."""


class NotificationError(CommitlyError):
    """Notification transport failure."""
