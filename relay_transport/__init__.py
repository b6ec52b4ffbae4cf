"""Secure transport client for the relay push service."""

__version__ = "0.1.0"

from .attachments import AttachmentAllocation, AttachmentTransfer
from .client import RelayPushClient
from .config import ClientIdentity, RelayConfig, load_config
from .directory import DirectorySnapshot, DirectoryUpdater
from .errors import (
    ErrorKind,
    RelayClientError,
    RelayConfigError,
    RelayConnectionError,
    RelayDeliveryError,
    RelayProtocolError,
    RelayRateLimitError,
    RelayResponseError,
    RelayTimeout,
    RelayTrustStoreError,
)
from .http import RelayResponse, RequestExecutor
from .protocol import (
    AttachmentPayload,
    AttachmentReference,
    DirectorySnapshotDescriptor,
    MessageResponse,
    OutgoingMessage,
)
from .request import RelayRequest, RequestBuilder
from .trust import PinnedTrustContext, load_trust_store, load_trust_store_file

__all__ = [
    "AttachmentAllocation",
    "AttachmentPayload",
    "AttachmentReference",
    "AttachmentTransfer",
    "ClientIdentity",
    "DirectorySnapshot",
    "DirectorySnapshotDescriptor",
    "DirectoryUpdater",
    "ErrorKind",
    "MessageResponse",
    "OutgoingMessage",
    "PinnedTrustContext",
    "RelayClientError",
    "RelayConfig",
    "RelayConfigError",
    "RelayConnectionError",
    "RelayDeliveryError",
    "RelayProtocolError",
    "RelayPushClient",
    "RelayRateLimitError",
    "RelayRequest",
    "RelayResponse",
    "RelayResponseError",
    "RelayTimeout",
    "RelayTrustStoreError",
    "RequestBuilder",
    "RequestExecutor",
    "__version__",
    "load_config",
    "load_trust_store",
    "load_trust_store_file",
]
