"""Pytest configuration and fixtures for relay_transport tests."""

from __future__ import annotations

import datetime
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12
from cryptography.x509.oid import NameOID

from relay_transport import ClientIdentity, RelayConfig

SERVICE_URL = "https://relay.example.test"
TRUST_PASSPHRASE = "whisper"


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def config() -> RelayConfig:
    """Unpinned configuration for request-level tests."""
    return RelayConfig(service_url=SERVICE_URL, enforce_tls_pinning=False)


@pytest.fixture
def identity() -> ClientIdentity:
    return ClientIdentity(principal="+15551234567", secret="s3cret")


async def _iterate(chunks: Sequence[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def create_mock_response(
    status: int = 200,
    text_data: str | None = None,
    headers: dict[str, str] | None = None,
    reason: str = "OK",
    chunks: Sequence[bytes] | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        text_data: Data to return from text() call
        headers: Response headers
        reason: HTTP reason phrase
        chunks: Body chunks yielded by content.iter_chunked()

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.reason = reason
    response.headers = dict(headers or {})
    response.text.return_value = text_data if text_data is not None else ""

    if chunks is not None:
        stream: Any = MagicMock()
        stream.iter_chunked.side_effect = lambda _size: _iterate(chunks)
        response.content = stream

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


def make_anchor_certificate(common_name: str = "Relay Test Anchor") -> x509.Certificate:
    """Generate a self-signed CA certificate."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )


def make_trust_bundle(
    certs: Sequence[x509.Certificate], passphrase: str = TRUST_PASSPHRASE
) -> bytes:
    """Serialize certificates as a passphrase-protected PKCS#12 trust bundle."""
    return pkcs12.serialize_key_and_certificates(
        None,
        None,
        None,
        list(certs),
        BestAvailableEncryption(passphrase.encode("utf-8")),
    )


@pytest.fixture
def anchor_certificate() -> x509.Certificate:
    return make_anchor_certificate()


@pytest.fixture
def trust_bundle_path(tmp_path: Path, anchor_certificate: x509.Certificate) -> Path:
    """Trust bundle written to disk."""
    path = tmp_path / "relay.p12"
    path.write_bytes(make_trust_bundle([anchor_certificate]))
    return path
