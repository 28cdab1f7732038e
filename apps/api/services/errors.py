from __future__ import annotations


class HelpCenterError(RuntimeError):
    """Base error for help center service issues."""


class NotFoundError(HelpCenterError):
    """Raised when a referenced article, guide, video, ticket or address does not exist."""


class InvalidTransitionError(HelpCenterError, ValueError):
    """Raised when a requested status or priority falls outside its enumeration."""


class ValidationFailedError(HelpCenterError, ValueError):
    """Raised when required text fields are missing."""


class UniquenessExhaustedError(HelpCenterError):
    """Raised when no free slug candidate was found within the attempt cap."""


class ConcurrencyConflictError(HelpCenterError):
    """Raised when an atomic storage operation matched no record."""


class SlugConflictError(HelpCenterError):
    """Raised by repositories when the slug unique index rejects a write."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Slug '{slug}' is already taken")
        self.slug = slug


class ForbiddenError(HelpCenterError):
    """Raised when the caller may not act on the referenced content."""
