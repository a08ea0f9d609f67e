"""
Certificate helpers for building package descriptors.

An Android package's "signature" is its DER encoded signing certificate.
These helpers turn PEM certificates into those raw blobs. No chain or
signature validation is performed; the encoder only hashes the bytes.
"""

from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import serialization


class CertificateParseError(Exception):
    """Raised when certificate parsing fails."""
    pass


def parse_pem_chain(pem_data: bytes) -> List[x509.Certificate]:
    """
    Parse concatenated PEM certificates.

    Handles leading/trailing whitespace and null bytes between certificates.

    Args:
        pem_data: PEM-encoded certificates (bytes)

    Returns:
        List of parsed certificates in order

    Raises:
        CertificateParseError: If parsing fails
    """
    certs = []
    remaining = pem_data
    end_marker = b'-----END CERTIFICATE-----'

    while remaining:
        remaining = remaining.lstrip(b'\x00\n\r\t ')
        if not remaining:
            break

        try:
            cert = x509.load_pem_x509_certificate(remaining)
        except ValueError as e:
            raise CertificateParseError(f"Failed to parse PEM certificate: {e}") from e
        certs.append(cert)

        end_pos = remaining.find(end_marker)
        if end_pos == -1:
            break
        remaining = remaining[end_pos + len(end_marker):]

    return certs


def certificate_to_signature(cert: x509.Certificate) -> bytes:
    """Returns the DER bytes of ``cert``, the raw blob a package carries"""
    return cert.public_bytes(serialization.Encoding.DER)


def load_signatures_pem(pem_data: bytes) -> List[bytes]:
    """Parse PEM certificates and return their DER encodings in order."""
    return [certificate_to_signature(cert) for cert in parse_pem_chain(pem_data)]
