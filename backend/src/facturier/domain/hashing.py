"""
Content hashes for rendered documents.

Rendering is reproducible byte for byte, so the SHA-256 of a PDF identifies
what was printed. The API sends it as the ETag; a caller holding the hash
of a stored copy can check that a re-render still matches it.
"""

import hashlib

HASH_PREFIX = "sha256:"


def compute_document_hash(content: bytes) -> str:
    """
    Hash rendered PDF bytes.

    Example:
        >>> compute_document_hash(b"%PDF-1.4 ...")
        'sha256:5b1d...'
    """
    if not content:
        raise ValueError("Cannot hash an empty document")
    return HASH_PREFIX + hashlib.sha256(content).hexdigest()


def verify_hash(content: bytes, expected_hash: str) -> bool:
    """
    Check rendered bytes against a stored hash.

    Raises:
        ValueError: If expected_hash lacks the 'sha256:' prefix
    """
    if not expected_hash.startswith(HASH_PREFIX):
        raise ValueError(f"Unsupported hash format: {expected_hash!r}")
    return compute_document_hash(content) == expected_hash
