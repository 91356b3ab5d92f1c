"""Domain-level exceptions for friendships, invitations and activities."""

from typing import Optional


class GatherlyError(Exception):
    """Base class for Gatherly errors."""

    reason: str = "unknown"

    def __init__(self, reason: Optional[str] = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class NotFoundError(GatherlyError):
    reason = "not_found"


class ProfileNotFoundError(NotFoundError):
    reason = "profile_not_found"


class ActivityNotFoundError(NotFoundError):
    reason = "activity_not_found"


class InvitationNotFoundError(NotFoundError):
    reason = "invitation_not_found"


class AlreadyFriendsError(GatherlyError):
    reason = "already_friends"


class SelfReferenceError(GatherlyError):
    reason = "self_reference"


class SelfRedemptionError(GatherlyError):
    reason = "self_redemption"


class InvitationExpiredError(GatherlyError):
    reason = "invitation_expired"


class InvalidPatchError(GatherlyError):
    """An update tried to clear a required field."""

    reason = "invalid_patch"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(self.reason)
        self.args = (f"{field} cannot be cleared",)


class StoreUnavailableError(GatherlyError):
    """The backing store failed. Raised `from` the driver error."""

    reason = "store_unavailable"

    def __init__(self, operation: str, entity_id: Optional[str] = None) -> None:
        self.operation = operation
        self.entity_id = entity_id
        detail = f"{operation} failed" if entity_id is None else f"{operation} failed for {entity_id}"
        super().__init__(self.reason)
        self.args = (detail,)


class PartialAggregationError(GatherlyError):
    """A feed was built, but some sources failed. Carries the partial result."""

    reason = "partial_aggregation"

    def __init__(self, result) -> None:
        super().__init__(self.reason)
        self.result = result
