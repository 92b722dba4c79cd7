"""Request authentication by client token and client IP detection."""

from __future__ import annotations

import functools
import ipaddress
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Lbry-Auth-Token"
GENERIC_RETRIEVAL_ERR = "unable to retrieve user"


class RetrievalError(Exception):
    """Raised when a user cannot be retrieved for a token."""


@dataclass
class User:
    id: int = 0
    wallet_id: str = ""


@dataclass(frozen=True)
class UserQuery:
    """The queried user's token with optional request metadata."""

    token: str = ""
    meta_remote_ip: str = ""


class Retriever(Protocol):
    def retrieve(self, query: UserQuery) -> Optional[User]:
        """Return the user for a token, None if unverified; raise on failure."""


@dataclass
class AuthenticatedRequest:
    """A request together with the outcome of authenticating it."""

    request: Any
    wallet_id: str = ""
    auth_error: Optional[BaseException] = None

    def __getattr__(self, name: str) -> Any:
        if name == "request":
            raise AttributeError(name)
        return getattr(self.request, name)

    def auth_failed(self) -> bool:
        return self.auth_error is not None

    def is_authenticated(self) -> bool:
        """True if a wallet was found; otherwise auth_error may or may not be set."""
        return self.wallet_id != ""


class Authenticator:
    """Resolves client tokens to wallet IDs using a retriever."""

    def __init__(self, retriever: Retriever):
        self.retriever = retriever

    def get_wallet_id(self, request) -> str:
        """Return the wallet ID for the request's token, or "" if there is none.

        Errors raised by the retriever propagate.
        """
        token = request.headers.get(TOKEN_HEADER)
        if token is None:
            return ""
        ip = get_ip_address_for_request(request)
        try:
            user = self.retriever.retrieve(UserQuery(token=token, meta_remote_ip=ip))
        except Exception:
            logger.debug("failed to authenticate user", extra={"ip": ip})
            raise
        return user.wallet_id if user is not None else ""

    def wrap(self, handler: Callable[[AuthenticatedRequest], Any]) -> Callable[[Any], Any]:
        """Turn a handler taking an AuthenticatedRequest into one taking a plain request."""

        @functools.wraps(handler)
        def wrapped(request):
            authenticated = AuthenticatedRequest(request)
            try:
                authenticated.wallet_id = self.get_wallet_id(request)
            except Exception as exc:
                authenticated.auth_error = exc
            return handler(authenticated)

        return wrapped


@dataclass
class TestUserRetriever:
    """Retriever for tests: returns a fixed wallet, checking the token if one is set."""

    __test__ = False

    wallet_id: str = ""
    token: str = ""

    def retrieve(self, query: UserQuery) -> User:
        if not self.token or self.token == query.token:
            return User(wallet_id=self.wallet_id)
        raise RetrievalError(GENERIC_RETRIEVAL_ERR)


_PRIVATE_RANGES = tuple(
    (ipaddress.IPv4Address(start), ipaddress.IPv4Address(end))
    for start, end in (
        ("10.0.0.0", "10.255.255.255"),
        ("100.64.0.0", "100.127.255.255"),
        ("127.0.0.1", "127.255.255.255"),
        ("172.16.0.0", "172.31.255.255"),
        ("192.0.0.0", "192.0.0.255"),
        ("192.168.0.0", "192.168.255.255"),
        ("198.18.0.0", "198.19.255.255"),
    )
)

_BROADCAST = ipaddress.IPv4Address("255.255.255.255")


def _parse_ip(ip) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return ip
    try:
        return ipaddress.ip_address(str(ip))
    except ValueError:
        return None


def _as_ipv4(ip) -> ipaddress.IPv4Address | None:
    if isinstance(ip, ipaddress.IPv4Address):
        return ip
    if isinstance(ip, ipaddress.IPv6Address):
        return ip.ipv4_mapped
    return None


def is_private_subnet(ip) -> bool:
    """True if an IPv4 address lies in one of the private ranges (end exclusive)."""
    v4 = _as_ipv4(_parse_ip(ip))
    if v4 is None:
        return False
    return any(start <= v4 < end for start, end in _PRIVATE_RANGES)


def _is_global_unicast(ip) -> bool:
    if ip is None:
        return False
    v4 = _as_ipv4(ip)
    candidate = v4 if v4 is not None else ip
    if candidate == _BROADCAST:
        return False
    return not (
        candidate.is_unspecified
        or candidate.is_loopback
        or candidate.is_multicast
        or candidate.is_link_local
    )


def get_ip_address_for_request(request) -> str:
    """Return the client's real IP, looking at proxy headers right to left first."""
    for header in ("X-Forwarded-For", "X-Real-Ip"):
        addresses = (request.headers.get(header) or "").split(",")
        for candidate in reversed(addresses):
            ip = candidate.strip()
            parsed = _parse_ip(ip)
            if not _is_global_unicast(parsed) or is_private_subnet(parsed):
                continue
            return ip
    remote = request.remote_addr or ""
    if remote in ("[::1]", "::1"):
        return "127.0.0.1"
    return remote