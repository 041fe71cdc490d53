"""Domain exceptions for the Escrow Platform.

Errors are grouped into the categories a caller can act on: not found,
unauthorized, invalid state, conflict and invalid terms. The API layer's
middleware maps each category to an HTTP status; concrete subclasses carry a
stable ``code`` for clients.
"""


class EscrowPlatformError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ESCROW_PLATFORM_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Categories ---


class NotFoundError(EscrowPlatformError):
    """An id that does not exist."""


class UnauthorizedError(EscrowPlatformError):
    """Wrong actor or role for the operation."""


class InvalidStateError(EscrowPlatformError):
    """Operation not valid in the current deal or dispute status."""


class ConflictError(EscrowPlatformError):
    """Uniqueness violation, bad invite code or a lost concurrent update."""


class InvalidDealTermsError(EscrowPlatformError):
    """Raised when deal terms fail validation at creation."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_DEAL_TERMS")


# --- Not Found ---


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int) -> None:
        super().__init__(message=f"User not found: {user_id}", code="USER_NOT_FOUND")
        self.user_id = user_id


class DealNotFoundError(NotFoundError):
    """Raised when a deal ID does not exist."""

    def __init__(self, deal_id: int) -> None:
        super().__init__(message=f"Deal not found: {deal_id}", code="DEAL_NOT_FOUND")
        self.deal_id = deal_id


class NoDisputeForDealError(NotFoundError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"No dispute found for deal: {deal_id}",
            code="NO_DISPUTE_FOR_DEAL",
        )
        self.deal_id = deal_id


class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: int) -> None:
        super().__init__(
            message=f"Notification not found: {notification_id}",
            code="NOTIFICATION_NOT_FOUND",
        )


# --- Unauthorized ---


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(message="Invalid credentials", code="INVALID_CREDENTIALS")


class NotPayerError(UnauthorizedError):
    def __init__(self, deal_id: int, action: str) -> None:
        super().__init__(
            message=f"Only the payer can {action} deal {deal_id}",
            code="NOT_PAYER",
        )


class NotProviderError(UnauthorizedError):
    def __init__(self, deal_id: int, action: str) -> None:
        super().__init__(
            message=f"Only the service provider can {action} deal {deal_id}",
            code="NOT_PROVIDER",
        )


class NotParticipantError(UnauthorizedError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"You are not part of deal {deal_id}",
            code="NOT_PARTICIPANT",
        )


class NotInviteeError(UnauthorizedError):
    """Raised when someone other than the invited user accepts an invitation."""

    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"You were not invited to deal {deal_id}",
            code="NOT_INVITEE",
        )


class AdminRequiredError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(
            message="A valid admin token is required for this operation",
            code="ADMIN_REQUIRED",
        )


# --- Invalid State ---


class InvalidStateTransitionError(InvalidStateError):
    """Raised when an attempted state transition is not allowed.

    Example: waiting_for_other_party -> work_in_progress (the deal must be
    joined and funded first).
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {attempted_event} from {current_state}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


class AlreadyPairedError(InvalidStateError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"Deal {deal_id} already has both parties",
            code="ALREADY_PAIRED",
        )


class CannotCancelFundedDealError(InvalidStateError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"Cannot cancel funded deal {deal_id}",
            code="CANNOT_CANCEL_FUNDED_DEAL",
        )


class DisputeClosedError(InvalidStateError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"Dispute for deal {deal_id} is already resolved",
            code="DISPUTE_CLOSED",
        )


class InsufficientEscrowError(InvalidStateError):
    """Raised when a payout would exceed what the deal holds in escrow."""

    def __init__(self, deal_id: int, required: str, available: str) -> None:
        super().__init__(
            message=(
                f"Insufficient escrow for deal {deal_id}: "
                f"required {required}, available {available}"
            ),
            code="INSUFFICIENT_ESCROW",
        )


# --- Conflict ---


class DuplicateUsernameError(ConflictError):
    def __init__(self, username: str) -> None:
        super().__init__(
            message=f"Username already exists: {username}",
            code="DUPLICATE_USERNAME",
        )


class DuplicateEmailError(ConflictError):
    def __init__(self) -> None:
        super().__init__(message="Email already exists", code="DUPLICATE_EMAIL")


class InvalidInviteCodeError(ConflictError):
    def __init__(self, code: str) -> None:
        super().__init__(
            message=f"Invalid invite code: {code}",
            code="INVALID_INVITE_CODE",
        )


class SelfJoinError(ConflictError):
    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"Cannot join your own deal {deal_id}",
            code="SELF_JOIN",
        )


class InviteCodeExhaustedError(ConflictError):
    """Raised when every generated invite code collided with a live one."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            message=f"Could not allocate a unique invite code after {attempts} attempts",
            code="INVITE_CODE_EXHAUSTED",
        )


class ConcurrentModificationError(ConflictError):
    """Raised when another request changed the deal between read and write."""

    def __init__(self, deal_id: int) -> None:
        super().__init__(
            message=f"Deal {deal_id} was modified concurrently, retry the request",
            code="CONCURRENT_MODIFICATION",
        )
