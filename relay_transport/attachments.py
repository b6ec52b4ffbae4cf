"""Attachment upload and bulk snapshot download.

Uploads are a two-step protocol: the relay service allocates a slot and
returns a pre-signed location, then the raw bytes are PUT directly to that
location. An ``AttachmentAllocation`` is the only way to reach the upload
step, so the ordering cannot be skipped.
"""

from __future__ import annotations

import logging
import os
import tempfile
import zlib
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import aiohttp

from .errors import RelayConnectionError, RelayProtocolError, RelayTimeout
from .http import RequestExecutor, raise_for_status
from .protocol import AttachmentPayload, AttachmentReference, parse_attachment_descriptor
from .request import RequestBuilder

_LOGGER = logging.getLogger(__name__)

ATTACHMENT_PATH = "/v1/attachments/{}"
CONTENT_LOCATION_HEADER = "Content-Location"

# Accept gzip framing only.
_GZIP_WBITS = 16 + zlib.MAX_WBITS


@dataclass(frozen=True)
class AttachmentAllocation:
    """Upload slot issued by the relay service.

    Attributes:
        attachment_id: Identifier to embed in the outgoing message.
        location: Pre-signed URL receiving the attachment bytes.
    """

    attachment_id: str
    location: str


async def _inflate_gzip(
    chunks: AsyncIterator[bytes], output: BinaryIO, chunk_size: int
) -> None:
    """Decompress a (possibly multi-member) gzip stream into output."""
    decompressor = zlib.decompressobj(_GZIP_WBITS)
    member_started = False
    async for chunk in chunks:
        data = chunk
        while data:
            member_started = True
            output.write(decompressor.decompress(data, chunk_size))
            if decompressor.eof:
                data = decompressor.unused_data
                decompressor = zlib.decompressobj(_GZIP_WBITS)
                member_started = False
            else:
                data = decompressor.unconsumed_tail
    output.write(decompressor.flush())
    if member_started and not decompressor.eof:
        raise RelayProtocolError("Compressed stream ended before the gzip trailer")


class AttachmentTransfer:
    """Performs attachment uploads and streamed snapshot downloads."""

    def __init__(
        self,
        builder: RequestBuilder,
        executor: RequestExecutor,
        *,
        chunk_size: int = 4096,
    ) -> None:
        self._builder = builder
        self._executor = executor
        self._chunk_size = chunk_size

    async def allocate(self) -> AttachmentAllocation:
        """Request an upload slot from the relay service.

        Raises:
            RelayProtocolError: If the response lacks a Content-Location header
                or an attachment id.
        """
        request = self._builder.build(ATTACHMENT_PATH, "", method="GET")
        response = await self._executor.execute(
            request, response_header=CONTENT_LOCATION_HEADER
        )
        if not response.header:
            raise RelayProtocolError("Server failed to allocate an attachment key")
        attachment_id = parse_attachment_descriptor(response.body)
        _LOGGER.debug("Allocated attachment slot %s", attachment_id)
        return AttachmentAllocation(attachment_id=attachment_id, location=response.header)

    async def upload(
        self, allocation: AttachmentAllocation, payload: AttachmentPayload
    ) -> AttachmentReference:
        """PUT attachment bytes to an allocated location.

        Raises:
            RelayResponseError: If the storage host answered non-200.
        """
        request = self._builder.build_transfer("PUT", allocation.location, payload.data)
        await self._executor.execute(request, classify_rate_limit=False)
        _LOGGER.info(
            "Uploaded attachment %s (%d bytes)", allocation.attachment_id, len(payload.data)
        )
        return AttachmentReference(id=allocation.attachment_id)

    async def send_attachment(self, payload: AttachmentPayload) -> AttachmentReference:
        """Allocate a slot and upload one attachment."""
        allocation = await self.allocate()
        return await self.upload(allocation, payload)

    async def send_attachments(
        self, payloads: Iterable[AttachmentPayload]
    ) -> list[AttachmentReference]:
        """Upload attachments one at a time, in the given order.

        The first failure propagates; references already obtained are dropped.
        """
        references: list[AttachmentReference] = []
        for payload in payloads:
            references.append(await self.send_attachment(payload))
        return references

    async def download_gzip(self, url: str, destination_dir: Path) -> Path:
        """Stream a gzip resource into a fresh file under destination_dir.

        The file is closed before returning and removed if the transfer fails.

        Args:
            url: Absolute URL supplied by the relay service.
            destination_dir: Directory receiving the decompressed file.

        Returns:
            Path of the decompressed file.
        """
        fd, name = tempfile.mkstemp(prefix="directory", suffix=".dat", dir=destination_dir)
        path = Path(name)
        completed = False
        try:
            with os.fdopen(fd, "wb") as output:
                await self._stream_into(url, output)
            completed = True
        finally:
            if not completed:
                path.unlink(missing_ok=True)
        return path

    async def _stream_into(self, url: str, output: BinaryIO) -> None:
        request = self._builder.build_transfer("GET", url)
        try:
            async with self._executor.session.request(
                request.method,
                request.url,
                headers=request.headers,
                ssl=request.ssl,
                timeout=request.timeout,
            ) as resp:
                raise_for_status(resp, classify_rate_limit=False)
                await _inflate_gzip(
                    resp.content.iter_chunked(self._chunk_size), output, self._chunk_size
                )
        except zlib.error as err:
            raise RelayProtocolError("Downloaded data is not a valid gzip stream") from err
        except TimeoutError as err:
            raise RelayTimeout("Download timed out") from err
        except aiohttp.ClientError as err:
            raise RelayConnectionError("Download failed") from err
