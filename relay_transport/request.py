"""Authenticated request construction for relay service endpoints.

Building a request never touches the network.
"""

from __future__ import annotations

import ssl
import string
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from .config import ClientIdentity, RelayConfig
from .errors import RelayConfigError
from .protocol import encode_json
from .trust import PinnedTrustContext

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"
STORAGE_ROUTE = "<storage>"


@dataclass(frozen=True)
class RelayRequest:
    """A fully configured request, ready for execution.

    Attributes:
        route: Loggable name of the target; never contains path arguments
            or pre-signed query strings.
    """

    method: str
    url: str
    route: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    ssl: ssl.SSLContext | bool = True
    timeout: aiohttp.ClientTimeout | None = None


def expand_path(path_template: str, path_args: tuple[str, ...]) -> str:
    """Substitute positional arguments into a fixed path template.

    Raises:
        ValueError: If the argument count does not match the placeholders.
    """
    placeholders = sum(
        1 for _, name, _, _ in string.Formatter().parse(path_template) if name is not None
    )
    if placeholders != len(path_args):
        raise ValueError(
            f"Path template {path_template!r} expects {placeholders} arguments, "
            f"got {len(path_args)}"
        )
    return path_template.format(*path_args)


class RequestBuilder:
    """Builds TLS-pinned, authenticated requests for the relay service."""

    def __init__(
        self,
        config: RelayConfig,
        identity: ClientIdentity,
        trust: PinnedTrustContext | None,
    ) -> None:
        if config.enforce_tls_pinning and trust is None:
            raise RelayConfigError("TLS pinning is enforced but no trust context was loaded")
        self._config = config
        self._identity = identity
        self._trust = trust

    @property
    def _ssl(self) -> ssl.SSLContext | bool:
        if self._config.enforce_tls_pinning and self._trust is not None:
            return self._trust.ssl_context
        return True

    def build(
        self,
        path_template: str,
        *path_args: str,
        method: str,
        body: dict[str, Any] | None = None,
    ) -> RelayRequest:
        """Build an authenticated service request.

        Args:
            path_template: Fixed path with positional placeholders
                (e.g., "/v1/accounts/code/{}").
            path_args: Pre-validated path components.
            method: HTTP method.
            body: JSON-serializable body, if any.

        Returns:
            RelayRequest targeting the configured service.
        """
        path = expand_path(path_template, path_args)
        headers = {"Content-Type": CONTENT_TYPE_JSON}
        # Derived per request; identity may be swapped by constructing a new client.
        if (authorization := self._identity.authorization_header()) is not None:
            headers["Authorization"] = authorization

        return RelayRequest(
            method=method,
            url=self._config.url(path),
            route=path_template,
            headers=headers,
            body=encode_json(body) if body is not None else None,
            ssl=self._ssl,
            timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
        )

    def build_transfer(self, method: str, url: str, data: bytes | None = None) -> RelayRequest:
        """Build an unauthenticated request against a server-issued URL.

        Used for direct attachment uploads and snapshot downloads, which
        target storage hosts outside the relay service.
        """
        headers = {"Content-Type": CONTENT_TYPE_OCTET_STREAM} if data is not None else {}
        return RelayRequest(
            method=method,
            url=url,
            route=STORAGE_ROUTE,
            headers=headers,
            body=data,
            ssl=True,
            timeout=aiohttp.ClientTimeout(total=self._config.transfer_timeout),
        )
