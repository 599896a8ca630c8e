"""Authorisation client for the DPC document permission service.

The DPC service answers ``GET /authorise?systemId=..&userId=..&documentId=..``
with a plain text body. The body ``ALLOW`` (surrounding whitespace ignored)
grants access, anything else denies it. Failing to obtain an answer at all is
reported as AuthorizationRequestFailed and never as a denial.
"""

import math
import uuid
from dataclasses import dataclass
from ipaddress import IPv6Address, ip_address
from typing import Optional
from urllib.parse import urlencode

import requests

from dpcauth import config, dpc_logging
from dpcauth.exception import AuthorizationRequestFailed
from dpcauth.requests_client import RequestsClient

logger = dpc_logging.init_logging("client")

# Identifies this system to DPC
OUR_SYSTEM_ID = "42"

AUTHORISE_PATH = "/authorise"
ALLOW = "ALLOW"

# Space and the control characters below it, nothing else is trimmed from the body
_TRIMMED = "".join(chr(c) for c in range(0x21))


def _bracketize_ipv6(host: str) -> str:
    try:
        if isinstance(ip_address(host), IPv6Address):
            return f"[{host}]"
    except ValueError:
        pass
    return host


@dataclass(frozen=True)
class ClientConfig:
    """Where the DPC service runs and how long a single call may take."""

    service_host: str
    service_port: int
    request_timeout: float = config.DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.service_host, str) or not self.service_host:
            raise ValueError("service_host must be a non-empty string")
        if (
            isinstance(self.service_port, bool)
            or not isinstance(self.service_port, int)
            or not 1 <= self.service_port <= 65535
        ):
            raise ValueError(f"service_port must be an integer between 1 and 65535, got {self.service_port!r}")
        if not math.isfinite(self.request_timeout) or self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be a positive finite number, got {self.request_timeout!r}")

    @property
    def authority(self) -> str:
        return f"{_bracketize_ipv6(self.service_host)}:{self.service_port}"


def _authorise_path(user_id: str, document_id: str) -> str:
    return f"{AUTHORISE_PATH}?{build_query(user_id, document_id)}"


def build_query(user_id: str, document_id: str) -> str:
    """Build the /authorise query string.

    Parameters are always sent in the order systemId, userId, documentId.
    Values are form-urlencoded as UTF-8, so a space becomes ``+``.
    """
    return urlencode(
        [("systemId", OUR_SYSTEM_ID), ("userId", user_id), ("documentId", document_id)],
        encoding="utf-8",
    )


def parse_decision(body: str) -> bool:
    return body.strip(_TRIMMED) == ALLOW


class AuthorizationClient:
    """A plug-in into our authorisation system that authorises with DPC.

    Instances keep nothing but their configuration, so a single client can
    serve concurrent calls from several threads.
    """

    def __init__(self, service_host: str, service_port: int, request_timeout: Optional[float] = None) -> None:
        """
        :param service_host: the name of the host where DPC authorisation service runs
        :param service_port: the port on which the service listens
        :param request_timeout: seconds to wait on the service for a single call;
            read from the client configuration when not given
        """
        if request_timeout is None:
            request_timeout = config.getfloat("client", "request_timeout", fallback=config.DEFAULT_TIMEOUT)

        self._config = ClientConfig(service_host, service_port, request_timeout)

    @classmethod
    def from_config(cls) -> "AuthorizationClient":
        """Create a client from the [client] section of the client configuration."""
        service_host = config.get("client", "service_host")
        service_port = config.getint("client", "service_port", fallback=0)
        if not service_host or not service_port:
            raise ValueError("service_host and service_port must be set in the client configuration")

        return cls(service_host, service_port)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def request_url(self, user_id: str, document_id: str) -> str:
        return f"http://{self._config.authority}{_authorise_path(user_id, document_id)}"

    def request(self, user_id: str, document_id: str) -> bool:
        """
        :param user_id: the id of the user who attempts the access
        :param document_id: the id of the document user tries to access
        :returns: ``True`` if the authorisation has been granted
        :raises AuthorizationRequestFailed: if any error is encountered during authorisation
        """
        token = dpc_logging.request_id_var.set(uuid.uuid4().hex[:8])
        try:
            granted = parse_decision(self._authorisation_response_for(user_id, document_id))

            log_func = logger.info if granted else logger.warning
            log_func(
                "Authorization %s by DPC: user=%s, document=%s",
                "GRANTED" if granted else "DENIED",
                user_id,
                document_id,
            )
            return granted
        finally:
            dpc_logging.request_id_var.reset(token)

    def _authorisation_response_for(self, user_id: str, document_id: str) -> str:
        path = _authorise_path(user_id, document_id)
        logger.debug("Requesting authorisation from http://%s%s", self._config.authority, path)

        try:
            with RequestsClient(self._config.authority) as client:
                response = client.get(path, timeout=self._config.request_timeout)
                if not 200 <= response.status_code < 300:
                    raise requests.exceptions.HTTPError(
                        f"Unexpected http response code from DPC: {response.status_code} {response.reason}",
                        response=response,
                    )
                return response.text
        except (requests.exceptions.RequestException, ValueError, OverflowError) as e:
            logger.error("Error: could not obtain authorisation from DPC at %s: %s", self._config.authority, e)
            raise AuthorizationRequestFailed(
                user_id=user_id,
                document_id=document_id,
                url=f"http://{self._config.authority}{path}",
            ) from e
