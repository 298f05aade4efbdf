from __future__ import annotations


class EngineError(Exception):
    """Base class for every error the rating engine surfaces to callers."""


class NotFound(EngineError):
    kind = "Entity"

    def __init__(self, ident: str) -> None:
        self.ident = ident
        super().__init__(f"{self.kind} not found: {ident}")


class ItemNotFound(NotFound):
    kind = "Oyster"


class ReviewNotFound(NotFound):
    kind = "Review"


class UserNotFound(NotFound):
    kind = "User"


class VoteNotFound(NotFound):
    kind = "Vote"

    def __init__(self, voter_id: str, review_id: str) -> None:
        self.voter_id = voter_id
        self.review_id = review_id
        super().__init__(f"{voter_id} on review {review_id}")


class SelfVoteRejected(EngineError):
    def __init__(self, review_id: str) -> None:
        self.review_id = review_id
        super().__init__("Cannot vote on your own review")


class InvalidAttributeRange(EngineError, ValueError):
    def __init__(self, attribute: str, value: float, low: float = 1.0, high: float = 10.0) -> None:
        self.attribute = attribute
        self.value = value
        super().__init__(f"{attribute} must be between {low:g} and {high:g}, got {value!r}")


class DuplicateReview(EngineError):
    def __init__(self, user_id: str, item_id: str) -> None:
        self.user_id = user_id
        self.item_id = item_id
        super().__init__("You have already reviewed this oyster")


class NotReviewOwner(EngineError):
    def __init__(self, review_id: str) -> None:
        self.review_id = review_id
        super().__init__("Not authorized to modify this review")
