from typing import Any, Optional


class DpcAuthException(Exception):
    """Base class for all dpcauth exceptions"""

    _msg_fmt = "An unknown exception occurred."

    def __init__(self, message: Optional[str] = None, **kwargs: Any):
        if not message:
            message = self._msg_fmt % kwargs

        super().__init__(message)


class ConfigurationError(DpcAuthException):
    _msg_fmt = "Invalid component '%(component)s'."


class AuthorizationRequestFailed(DpcAuthException):
    """The authorization decision could not be obtained.

    This is not a denial. It covers every transport or protocol problem met
    while asking the DPC service: connection failures, malformed URLs,
    unreadable responses, timeouts and non-successful HTTP status codes. The
    original error is chained as ``__cause__``.
    """

    _msg_fmt = "Authorization request for user '%(user_id)s' on document '%(document_id)s' failed."

    def __init__(
        self,
        message: Optional[str] = None,
        user_id: str = "",
        document_id: str = "",
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_id=user_id, document_id=document_id)
        self.user_id = user_id
        self.document_id = document_id
        self.url = url
