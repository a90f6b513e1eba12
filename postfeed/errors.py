"""
Error taxonomy for the post service.

Every error carries the HTTP status the adapter maps it to, so routers never
translate exceptions by hand.  Only ``StoreError`` is safe to retry.
"""


class PostFeedError(Exception):
    """Base class for all errors raised by the post service."""

    status_code: int = 500
    retryable: bool = False
    default_message = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(PostFeedError):
    status_code = 404
    default_message = "Not found"


class Forbidden(PostFeedError):
    status_code = 403
    default_message = "Not authorized"


class Conflict(PostFeedError):
    status_code = 409
    default_message = "Conflict"


class ValidationError(PostFeedError):
    status_code = 400
    default_message = "Text is required"


class StoreError(PostFeedError):
    """Transient store failure (timeout, driver error, contention)."""

    status_code = 503
    retryable = True
    default_message = "Store unavailable, try again"


class AuthError(PostFeedError):
    status_code = 401
    default_message = "Token is not valid"


class VersionConflict(Exception):
    """
    Raised by the store when a versioned update finds a newer revision.

    Internal to the read-modify-write retry loop; never reaches callers.
    """

    def __init__(self, post_id: str, expected_version: int) -> None:
        self.post_id = post_id
        self.expected_version = expected_version
        super().__init__(f"post {post_id} is no longer at version {expected_version}")
