"""
DER serialization of attestation application id structures.

Serialization follows a measure-then-write protocol: the codec first
reports the encoded length, a buffer of exactly that length is allocated,
and the codec then writes into it. Any codec object exposing
``encoded_length`` and ``encode_into`` can be used.
"""

import logging

from pyasn1.codec.der import encoder as der_encoder
from pyasn1.error import PyAsn1Error

from .types import AllocationFailureError, EncodingFailureError

logger = logging.getLogger(__name__)


class DerCodec:
    """pyasn1-backed DER codec implementing the measure-then-write protocol."""

    def encoded_length(self, value) -> int:
        """Return the number of bytes ``value`` encodes to."""
        return len(der_encoder.encode(value))

    def encode_into(self, value, buffer: bytearray) -> int:
        """
        Encode ``value`` into ``buffer``.

        Returns:
            Number of bytes written, or -1 if ``buffer`` is too small
        """
        encoded = der_encoder.encode(value)
        if len(encoded) > len(buffer):
            return -1
        buffer[:len(encoded)] = encoded
        return len(encoded)


_DEFAULT_CODEC = DerCodec()


def serialize(value, codec=None) -> bytes:
    """
    Flatten an ASN.1 structure into its DER bytes.

    Args:
        value: Fully assembled pyasn1 value
        codec: Codec implementing ``encoded_length``/``encode_into``,
            defaults to :class:`DerCodec`

    Returns:
        The encoded bytes

    Raises:
        EncodingFailureError: If either pass fails or reports a negative length
        AllocationFailureError: If the output buffer cannot be allocated
    """
    if codec is None:
        codec = _DEFAULT_CODEC

    try:
        length = codec.encoded_length(value)
    except PyAsn1Error as e:
        raise EncodingFailureError(f"Failed to measure DER encoding: {e}") from e
    if length < 0:
        raise EncodingFailureError(f"Codec reported negative length {length}")

    try:
        buffer = bytearray(length)
    except MemoryError as e:
        raise AllocationFailureError(f"Cannot allocate {length} byte output buffer") from e

    try:
        written = codec.encode_into(value, buffer)
    except PyAsn1Error as e:
        raise EncodingFailureError(f"Failed to write DER encoding: {e}") from e
    if written < 0:
        raise EncodingFailureError(f"Codec reported negative length {written}")
    if written != length:
        raise EncodingFailureError(
            f"Codec wrote {written} bytes, expected {length}"
        )

    logger.debug("Serialized attestation application id (%d bytes)", length)
    return bytes(buffer)
