"""Review flows built on top of the pure scheduler."""

from .review_session import ReviewSessionFlow

__all__ = ["ReviewSessionFlow"]
