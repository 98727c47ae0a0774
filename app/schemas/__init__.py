from .common import ApiResponse, ErrorDetail, ResponseMeta
from .signing import (
    DocumentCreateRequest,
    DocumentResponse,
    DocumentStatusResponse,
    LedgerEntryResponse,
    SequenceInitializeRequest,
    SignatureSubmitRequest,
    SignerCreateRequest,
    SignerResponse,
)

__all__ = [
    "ApiResponse",
    "ErrorDetail",
    "ResponseMeta",
    "DocumentCreateRequest",
    "DocumentResponse",
    "DocumentStatusResponse",
    "LedgerEntryResponse",
    "SequenceInitializeRequest",
    "SignatureSubmitRequest",
    "SignerCreateRequest",
    "SignerResponse",
]
