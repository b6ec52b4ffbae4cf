"""Client configuration and identity.

Configuration is treated as data: it is loaded once, validated, and then
passed by reference into every request the client builds.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import aiohttp
import yaml

from .errors import RelayConfigError

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_TRANSFER_TIMEOUT = 120.0
DEFAULT_DOWNLOAD_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class RelayConfig:
    """Relay push service connection settings.

    Attributes:
        service_url: Base URL of the push service (e.g., "https://push.example.org").
        enforce_tls_pinning: Require the bundled trust store for every handshake.
        trust_store_path: PKCS#12 trust anchor bundle.
        trust_store_passphrase: Passphrase protecting the trust bundle.
        request_timeout: Total timeout for API requests (seconds).
        transfer_timeout: Total timeout for attachment and snapshot transfers (seconds).
        download_chunk_size: Read buffer size for streamed downloads (bytes).
    """

    service_url: str
    enforce_tls_pinning: bool = True
    trust_store_path: Path | None = None
    trust_store_passphrase: str | None = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    transfer_timeout: float = DEFAULT_TRANSFER_TIMEOUT
    download_chunk_size: int = DEFAULT_DOWNLOAD_CHUNK_SIZE

    def validate(self) -> None:
        """Check settings that would otherwise fail on the first request.

        Raises:
            RelayConfigError: If the settings are inconsistent.
        """
        parts = urlsplit(self.service_url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise RelayConfigError(f"Invalid service URL: {self.service_url!r}")
        if self.enforce_tls_pinning:
            if parts.scheme != "https":
                raise RelayConfigError("TLS pinning requires an https service URL")
        if self.download_chunk_size <= 0:
            raise RelayConfigError("download_chunk_size must be positive")

    def url(self, path: str) -> str:
        return f"{self.service_url.rstrip('/')}{path}"


@dataclass(frozen=True)
class ClientIdentity:
    """Account credentials presented to the service.

    Attributes:
        principal: Account identifier (phone number or account id).
        secret: Shared secret; None before the account is provisioned.
    """

    principal: str
    secret: str | None = None

    def authorization_header(self) -> str | None:
        """Basic credential for this identity, or None without a secret."""
        if self.secret is None:
            return None
        return aiohttp.encode_basic_auth(self.principal, self.secret, encoding="utf-8")

    def __repr__(self) -> str:
        return f"ClientIdentity(principal=<redacted>, secret={'<set>' if self.secret else None})"


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return contents."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RelayConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(config_path: Path) -> RelayConfig:
    """Load client configuration from a YAML file.

    A relative ``trust_store_path`` is resolved against the directory
    holding the config file.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Validated RelayConfig.

    Raises:
        RelayConfigError: If the file is missing, malformed or inconsistent.
    """
    try:
        data = _load_yaml(config_path)
    except OSError as err:
        raise RelayConfigError(f"Cannot read config file: {config_path}") from err
    except yaml.YAMLError as err:
        raise RelayConfigError(f"Malformed config file: {config_path}") from err

    service_url = data.get("service_url")
    if not service_url:
        raise RelayConfigError("Config is missing service_url")

    trust_store_path = None
    if raw_path := data.get("trust_store_path"):
        trust_store_path = Path(raw_path)
        if not trust_store_path.is_absolute():
            trust_store_path = config_path.parent / trust_store_path

    passphrase = data.get("trust_store_passphrase")
    try:
        config = RelayConfig(
            service_url=str(service_url),
            enforce_tls_pinning=bool(data.get("enforce_tls_pinning", True)),
            trust_store_path=trust_store_path,
            trust_store_passphrase=None if passphrase is None else str(passphrase),
            request_timeout=float(data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
            transfer_timeout=float(data.get("transfer_timeout", DEFAULT_TRANSFER_TIMEOUT)),
            download_chunk_size=int(
                data.get("download_chunk_size", DEFAULT_DOWNLOAD_CHUNK_SIZE)
            ),
        )
    except (TypeError, ValueError) as err:
        raise RelayConfigError(f"Invalid value in config file: {err}") from err

    config.validate()
    if config.enforce_tls_pinning and config.trust_store_path is None:
        raise RelayConfigError("TLS pinning requires a trust store path")
    return config
