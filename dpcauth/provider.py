"""Authorization provider backed by the DPC service.

This module adapts AuthorizationClient to the request/response shape used by
the surrounding authorization system. DPC makes the actual decision, the
provider only carries it over together with a reason for audit logs.
"""

from dataclasses import dataclass

from dpcauth import dpc_logging
from dpcauth.client import AuthorizationClient

logger = dpc_logging.init_logging("provider")


@dataclass(frozen=True)
class DocumentAccessRequest:
    """Request for an authorization decision.

    Attributes:
        user_id: The id of the user who attempts the access
        document_id: The id of the document the user tries to access
    """

    user_id: str
    document_id: str


@dataclass(frozen=True)
class AuthorizationResponse:
    """Response from an authorization decision.

    Attributes:
        allowed: Whether the access is authorized
        reason: Human-readable reason for the decision (for logging and auditing)
    """

    allowed: bool
    reason: str


class DpcAuthorizationProvider:
    """Authorization provider delegating every decision to DPC.

    The provider holds no state besides the client and is safe to call
    concurrently.

    AuthorizationRequestFailed raised by the client is not turned into a
    denial here. Whether an unavailable DPC should deny access is up to the
    caller.
    """

    def __init__(self, client: AuthorizationClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls) -> "DpcAuthorizationProvider":
        return cls(AuthorizationClient.from_config())

    def authorize(self, request: DocumentAccessRequest) -> AuthorizationResponse:
        """Ask DPC for a decision.

        Raises:
            AuthorizationRequestFailed: If DPC could not be asked or did not answer
        """
        if self._client.request(request.user_id, request.document_id):
            return AuthorizationResponse(allowed=True, reason="DPC granted access")

        logger.debug("DPC denied user %s access to document %s", request.user_id, request.document_id)
        return AuthorizationResponse(allowed=False, reason="DPC denied access")

    def get_name(self) -> str:
        return "dpc"
