class HuddleError(Exception):
    """Base exception for huddle domain errors."""

    pass


class AuthorizationError(HuddleError):
    """Raised when a caller may not perform an operation."""

    pass


class NotAMemberError(AuthorizationError):
    """Raised when a sender is not an active member of the team."""

    def __init__(self, team_id: str, user_id: str):
        self.team_id = team_id
        self.user_id = user_id
        super().__init__(f"User '{user_id}' is not a member of team '{team_id}'")


class TeamNotFoundError(HuddleError):
    """Raised when a specified team cannot be found."""

    pass


class TransportError(HuddleError):
    """Raised when the backing store is unreachable or fails."""

    pass


class NotificationCreateFailure(HuddleError):
    """Raised when a notification record could not be written."""

    def __init__(self, recipient_id: str, cause: BaseException):
        self.recipient_id = recipient_id
        self.cause = cause
        super().__init__(f"Notification for '{recipient_id}' failed: {cause}")


class MessageNotFoundError(HuddleError):
    """Raised when a message id does not exist."""

    pass
