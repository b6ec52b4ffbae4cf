"""Pinned trust store loading.

The trust store is a passphrase-protected PKCS#12 bundle shipped with the
client. Every certificate it holds becomes a trust anchor of a dedicated
SSL context; system CAs are never added. Failures here indicate a broken
build artifact and are never retried.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding, pkcs12
from cryptography.x509 import Certificate

from .errors import RelayTrustStoreError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PinnedTrustContext:
    """SSL context restricted to the bundled trust anchors.

    Attributes:
        ssl_context: Context used for every pinned TLS handshake.
        fingerprints: SHA-256 hex fingerprints of the trust anchors.
    """

    ssl_context: ssl.SSLContext
    fingerprints: tuple[str, ...]


def _bundle_certificates(data: bytes, passphrase: str | None) -> list[Certificate]:
    password = passphrase.encode("utf-8") if passphrase else None
    try:
        bundle = pkcs12.load_pkcs12(data, password)
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise RelayTrustStoreError("Trust store could not be decrypted") from err

    certs = [entry.certificate for entry in bundle.additional_certs]
    if bundle.cert is not None:
        certs.insert(0, bundle.cert.certificate)
    return certs


def load_trust_store(data: bytes, passphrase: str | None) -> PinnedTrustContext:
    """Build a pinned trust context from trust bundle bytes.

    Args:
        data: PKCS#12 bundle contents.
        passphrase: Bundle passphrase.

    Returns:
        Immutable PinnedTrustContext.

    Raises:
        RelayTrustStoreError: If the bundle cannot be parsed, decrypted or
            yields no usable trust anchors.
    """
    certs = _bundle_certificates(data, passphrase)
    if not certs:
        raise RelayTrustStoreError("Trust store contains no certificates")

    cadata = "".join(cert.public_bytes(Encoding.PEM).decode("ascii") for cert in certs)
    try:
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH, cadata=cadata)
    except ssl.SSLError as err:
        raise RelayTrustStoreError("Trust anchors rejected by SSL backend") from err

    fingerprints = tuple(cert.fingerprint(hashes.SHA256()).hex() for cert in certs)
    _LOGGER.debug("Loaded %d pinned trust anchors", len(fingerprints))
    return PinnedTrustContext(ssl_context=context, fingerprints=fingerprints)


def load_trust_store_file(path: Path, passphrase: str | None) -> PinnedTrustContext:
    """Read a trust bundle from disk and build a pinned trust context."""
    try:
        data = path.read_bytes()
    except OSError as err:
        raise RelayTrustStoreError(f"Trust store unreadable: {path}") from err
    return load_trust_store(data, passphrase)
