"""
Signature Classifier

Maps the leading bytes of an attachment to a file extension using a small,
fixed signature table. Only the first four bytes are inspected; anything
shorter is unresolved.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

HEADER_SIZE = 4


@dataclass(frozen=True)
class FormatSignature:
    prefix: bytes
    tag: str

    def matches(self, header: bytes) -> bool:
        return header.startswith(self.prefix)


# Mutually exclusive prefixes, checked in order
SIGNATURES: Tuple[FormatSignature, ...] = (
    FormatSignature(bytes.fromhex("25504446"), "pdf"),  # %PDF
    FormatSignature(bytes.fromhex("89504e47"), "png"),  # \x89PNG
    FormatSignature(bytes.fromhex("00000020"), "mp4"),  # ftyp box, size 0x20
    FormatSignature(bytes.fromhex("00000018"), "mp4"),  # ftyp box, size 0x18
)


class SignatureClassifier:
    """Pure prefix lookup over an ordered signature table."""

    def __init__(self, signatures: Tuple[FormatSignature, ...] = SIGNATURES) -> None:
        self._signatures = tuple(signatures)

    @property
    def signatures(self) -> Tuple[FormatSignature, ...]:
        return self._signatures

    def classify(self, content: bytes) -> Optional[str]:
        """Return the tag of the first matching signature, or None."""
        if len(content) < HEADER_SIZE:
            return None

        header = bytes(content[:HEADER_SIZE])
        for signature in self._signatures:
            if signature.matches(header):
                return signature.tag

        return None
