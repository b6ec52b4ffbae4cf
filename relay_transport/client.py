"""Public API of the relay push transport client.

Usage:
    config = load_config(Path("relay.yaml"))
    identity = ClientIdentity(principal="+15551234567", secret="s3cret")
    async with aiohttp.ClientSession() as session:
        client = RelayPushClient(session, config, identity)
        await client.send_message(["+15557654321"], "hello")

Every operation runs its requests one after another on the calling task.
Nothing is retried; errors other than best-effort directory sync propagate
unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import aiohttp

from .attachments import AttachmentTransfer
from .config import ClientIdentity, RelayConfig
from .directory import DirectorySnapshot, DirectoryUpdater
from .errors import RelayConfigError, RelayDeliveryError
from .http import RequestExecutor
from .protocol import (
    AttachmentPayload,
    OutgoingMessage,
    build_message_body,
    build_token_body,
    normalize_recipients,
    parse_directory_descriptor,
    parse_message_response,
)
from .request import RequestBuilder
from .trust import PinnedTrustContext, load_trust_store_file

_LOGGER = logging.getLogger(__name__)

CREATE_ACCOUNT_SMS_PATH = "/v1/accounts/sms/{}"
CREATE_ACCOUNT_VOICE_PATH = "/v1/accounts/voice/{}"
VERIFY_ACCOUNT_PATH = "/v1/accounts/code/{}"
REGISTER_TOKEN_PATH = "/v1/accounts/gcm/"
DIRECTORY_PATH = "/v1/directory/"
MESSAGE_PATH = "/v1/messages/"


class RelayPushClient:
    """Client for the relay push service."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: RelayConfig,
        identity: ClientIdentity,
        *,
        trust: PinnedTrustContext | None = None,
    ) -> None:
        """Initialize client.

        The trust store is loaded here, once, when pinning is enforced and no
        context is supplied.

        Args:
            session: Caller-owned aiohttp session.
            config: Validated client configuration.
            identity: Account credentials.
            trust: Pre-loaded pinned trust context.

        Raises:
            RelayConfigError: If the configuration is inconsistent.
            RelayTrustStoreError: If the trust store cannot be loaded.
        """
        config.validate()
        if trust is None and config.enforce_tls_pinning:
            if config.trust_store_path is None:
                raise RelayConfigError("TLS pinning requires a trust store path")
            trust = load_trust_store_file(
                config.trust_store_path, config.trust_store_passphrase
            )

        self._config = config
        self._identity = identity
        self._trust = trust
        self._builder = RequestBuilder(config, identity, trust)
        self._executor = RequestExecutor(session)
        self._attachments = AttachmentTransfer(
            self._builder, self._executor, chunk_size=config.download_chunk_size
        )

    @property
    def identity(self) -> ClientIdentity:
        return self._identity

    @property
    def trust(self) -> PinnedTrustContext | None:
        return self._trust

    @property
    def attachments(self) -> AttachmentTransfer:
        return self._attachments

    async def create_account(self, voice: bool = False) -> None:
        """Request a verification code by SMS, or by voice call when voice is set."""
        path = CREATE_ACCOUNT_VOICE_PATH if voice else CREATE_ACCOUNT_SMS_PATH
        request = self._builder.build(path, self._identity.principal, method="POST")
        await self._executor.execute(request)
        _LOGGER.info("Requested %s verification code", "voice" if voice else "sms")

    async def verify_account(self, verification_code: str) -> None:
        """Confirm the account with a received verification code."""
        request = self._builder.build(VERIFY_ACCOUNT_PATH, verification_code, method="PUT")
        await self._executor.execute(request)
        _LOGGER.info("Account verified")

    async def register_token(self, token: str) -> None:
        """Register a device push token."""
        request = self._builder.build(
            REGISTER_TOKEN_PATH, method="PUT", body=build_token_body(token)
        )
        await self._executor.execute(request)

    async def unregister_token(self) -> None:
        """Remove the registered device push token."""
        request = self._builder.build(REGISTER_TOKEN_PATH, method="DELETE")
        await self._executor.execute(request)

    async def send_message(
        self,
        recipients: str | Iterable[str],
        text: str,
        attachments: Iterable[AttachmentPayload] = (),
    ) -> None:
        """Send a message, uploading its attachments first.

        Attachments are uploaded sequentially in the given order; if one
        fails, no message is sent.

        Args:
            recipients: One recipient or an ordered collection of recipients.
            text: Message body.
            attachments: Attachment contents to upload and reference.

        Raises:
            RelayDeliveryError: If the service reports failed recipients.
            RelayClientError: On any transport failure.
        """
        references = await self._attachments.send_attachments(attachments)
        message = OutgoingMessage(
            recipients=normalize_recipients(recipients),
            body=text,
            attachment_ids=tuple(reference.id for reference in references),
        )
        await self._send(message)

    async def _send(self, message: OutgoingMessage) -> None:
        request = self._builder.build(
            MESSAGE_PATH, method="POST", body=build_message_body(message)
        )
        response = await self._executor.execute(request)
        result = parse_message_response(response.body)
        if result.failure:
            raise RelayDeliveryError(result.failure)
        _LOGGER.debug(
            "Message delivered to %d recipients with %d attachments",
            len(message.recipients),
            len(message.attachment_ids),
        )

    async def retrieve_directory(
        self, directory: DirectoryUpdater, storage_dir: Path
    ) -> DirectorySnapshot | None:
        """Download the current directory snapshot and hand it to directory.

        Directory sync is advisory: failures are logged and reported as None.

        Args:
            directory: Component consuming the snapshot file.
            storage_dir: Directory in which the snapshot file is created.

        Returns:
            The delivered snapshot, or None if the sync failed.
        """
        try:
            request = self._builder.build(DIRECTORY_PATH, method="GET")
            response = await self._executor.execute(request)
            descriptor = parse_directory_descriptor(response.body)
            path = await self._attachments.download_gzip(
                descriptor.download_url, storage_dir
            )
        except Exception as err:
            _LOGGER.warning("Directory retrieval failed: %s", err)
            return None

        try:
            directory.update(
                path, descriptor.capacity, descriptor.hash_count, descriptor.version
            )
        except Exception as err:
            _LOGGER.warning("Directory update rejected snapshot: %s", err)
            path.unlink(missing_ok=True)
            return None

        _LOGGER.info("Directory updated to version %d", descriptor.version)
        return DirectorySnapshot(path=path, descriptor=descriptor)
