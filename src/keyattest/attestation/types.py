"""
Shared types, errors, and protocol constants for attestation application ids.

This module is the canonical source for types used across the encoder,
the lookup and the provider adapter. It has no intra-package dependencies,
so any module can import from it without risk of circular imports.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import List, Optional


# =============================================================================
# Protocol-level constants
# =============================================================================

# Maximum size of the DER payload embedded in the attestation certificate
KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE = 1024

UINT64_MAX = 0xFFFFFFFFFFFFFFFF
SHA256_DIGEST_SIZE = 32

# Privileged caller identities
AID_ROOT = 0
AID_SYSTEM = 1000

SYSTEM_PACKAGE_NAME = "AndroidSystem"


class StatusCode(IntEnum):
    """Generic status codes surfaced alongside local build failures."""
    NO_MEMORY = -12
    BAD_VALUE = -22
    UNKNOWN_ERROR = -2147483648


class ResponseCode(IntEnum):
    """Keystore response codes owned by the attestation id path."""
    GET_ATTESTATION_APPLICATION_ID_FAILED = 27


# =============================================================================
# Errors
# =============================================================================

class AttestationIdError(Exception):
    """Base class for attestation application id errors"""
    code = StatusCode.UNKNOWN_ERROR


class MissingNameError(AttestationIdError):
    """Raised when a package descriptor has no package name"""
    code = StatusCode.BAD_VALUE


class EmptyIdentityError(AttestationIdError):
    """Raised when an application identity contains no packages"""
    code = StatusCode.BAD_VALUE


class AllocationFailureError(AttestationIdError):
    """Raised when an encoder node cannot be allocated or attached"""
    code = StatusCode.NO_MEMORY


class EncodingFailureError(AttestationIdError):
    """Raised when a value cannot be DER encoded"""
    code = StatusCode.UNKNOWN_ERROR


class AttestationIdLookupFailedError(AttestationIdError):
    """Raised when the package info provider could not be reached after retrying"""
    code = ResponseCode.GET_ATTESTATION_APPLICATION_ID_FAILED


# =============================================================================
# Identity model
# =============================================================================

@dataclass(frozen=True)
class PackageDescriptor:
    """
    One installed package as reported by the package info provider.

    Attributes:
        name: Package name, ``None`` or empty when the provider omitted it
        version_code: Unsigned 64-bit version code
        signatures: Raw signing-certificate blobs, in provider order
    """
    name: Optional[str]
    version_code: int
    signatures: List[bytes] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "PackageDescriptor":
        """Build a descriptor from the provider's JSON shape.

        Signatures are base64 strings. A missing ``packageName`` is kept as
        ``None`` so the encoder can reject it.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Package info must be an object, got {type(data).__name__}")

        name = data.get("packageName")
        if name is not None and not isinstance(name, str):
            raise ValueError(f"Invalid packageName: {name!r}")

        try:
            signatures = [
                base64.b64decode(sig, validate=True)
                for sig in data.get("signatures") or []
            ]
        except (binascii.Error, TypeError) as e:
            raise ValueError(f"Invalid signature encoding: {e}") from e

        version_code = data.get("versionCode", 0)
        if not isinstance(version_code, int) or isinstance(version_code, bool):
            raise ValueError(f"Invalid versionCode: {version_code!r}")

        return cls(
            name=name,
            version_code=version_code,
            signatures=signatures,
        )


@dataclass(frozen=True)
class ApplicationIdentity:
    """
    The set of packages sharing a caller uid.

    All packages under one uid are signed by the same certificates, so only
    the first package's signatures are digested into the attestation id.
    """
    packages: List[PackageDescriptor] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ApplicationIdentity":
        if not isinstance(data, dict):
            raise ValueError(f"Identity must be an object, got {type(data).__name__}")
        infos = data.get("packageInfos")
        if not isinstance(infos, list):
            raise ValueError("Identity is missing the packageInfos list")
        return cls(packages=[PackageDescriptor.from_dict(info) for info in infos])

    def with_signatures(self, signatures: List[bytes]) -> "ApplicationIdentity":
        """Return a copy whose first package carries ``signatures``."""
        if not self.packages:
            raise EmptyIdentityError("Application identity has no packages")
        first = replace(self.packages[0], signatures=list(signatures))
        return ApplicationIdentity(packages=[first] + list(self.packages[1:]))


def system_identity() -> ApplicationIdentity:
    """Fixed identity reported for privileged callers."""
    return ApplicationIdentity(
        packages=[PackageDescriptor(name=SYSTEM_PACKAGE_NAME, version_code=1)]
    )
