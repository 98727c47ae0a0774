"""Repository layer modules."""

from app.repositories.document_repository import DocumentRepository
from app.repositories.sequence_repository import SequenceRepository
from app.repositories.signature_repository import SignatureRepository
from app.repositories.signer_repository import SignerRepository

__all__ = [
    "DocumentRepository",
    "SequenceRepository",
    "SignatureRepository",
    "SignerRepository",
]
