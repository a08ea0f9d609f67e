"""
Attestation application id encoder.

Builds the DER ``AttestationApplicationId`` structure from an
:class:`ApplicationIdentity`:

- one ``KeyAttestationPackageInfo`` per package, in input order
- one SHA-256 digest per signing certificate of the first package

Entries are added until a running size estimate exceeds the maximum
payload size; later entries are dropped without failing the build. The
estimate uses fixed per-entry overheads, so the encoded result can still be
slightly larger than the maximum.
"""

import hashlib
import logging
from dataclasses import dataclass

from pyasn1.error import PyAsn1Error
from pyasn1.type import univ

from .abi_aaid import (
    AAID_GENERAL_OVERHEAD,
    AAID_PKG_INFO_OVERHEAD,
    AAID_SIGNATURE_SIZE,
    AttestationApplicationId,
    KeyAttestationPackageInfo,
    PackageInfoSet,
    SignatureDigestSet,
)
from .der import serialize
from .types import (
    KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE,
    UINT64_MAX,
    AllocationFailureError,
    ApplicationIdentity,
    EmptyIdentityError,
    EncodingFailureError,
    MissingNameError,
    PackageDescriptor,
)

logger = logging.getLogger(__name__)


def signature_digest(signature: bytes) -> bytes:
    """Returns the SHA-256 digest of a raw signing certificate"""
    return hashlib.sha256(signature).digest()


def would_exceed_budget(running_total: int, next_entry_overhead: int,
                        max_size: int = KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE) -> bool:
    """True if charging ``next_entry_overhead`` takes the estimate past ``max_size``."""
    return running_total + next_entry_overhead > max_size


@dataclass
class SizeBudget:
    """
    Running size estimate for one build.

    A charge is always added to the estimate, even when it overflows, so
    that once the package list overflows no signature digest fits either.
    """
    max_size: int = KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE
    estimated_size: int = AAID_GENERAL_OVERHEAD

    def charge(self, overhead: int) -> bool:
        """Add ``overhead`` to the estimate; returns False if it no longer fits."""
        exceeded = would_exceed_budget(self.estimated_size, overhead, self.max_size)
        self.estimated_size += overhead
        return not exceeded


def attach(aggregate: univ.SetOf, node) -> None:
    """
    Append ``node`` to ``aggregate``.

    The aggregate owns the node once this returns. On failure the node is
    left unattached and an error is raised.
    """
    try:
        aggregate.append(node)
    except MemoryError as e:
        raise AllocationFailureError("Cannot attach node to aggregate") from e
    except PyAsn1Error as e:
        raise EncodingFailureError(f"Cannot attach node to aggregate: {e}") from e


def _encoded_name(descriptor: PackageDescriptor) -> bytes:
    if not descriptor.name:
        logger.error("Key attestation package info lacks package name")
        raise MissingNameError("Key attestation package info lacks package name")
    if not isinstance(descriptor.name, str):
        raise EncodingFailureError(
            f"Package name must be text, got {type(descriptor.name).__name__}"
        )
    try:
        return descriptor.name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingFailureError(f"Package name is not valid UTF-8: {e}") from e


def encode_package_info(descriptor: PackageDescriptor) -> KeyAttestationPackageInfo:
    """
    Encode one package's (name, version) pair.

    The version is an ASN.1 INTEGER so version codes wider than 32 bits
    are kept intact.

    Raises:
        MissingNameError: If the package has no name
        EncodingFailureError: If the name or version cannot be encoded
        AllocationFailureError: If the node cannot be allocated
    """
    name = _encoded_name(descriptor)

    version_code = descriptor.version_code
    if not 0 <= version_code <= UINT64_MAX:
        raise EncodingFailureError(
            f"Version code {version_code} is outside the unsigned 64-bit range"
        )

    try:
        info = KeyAttestationPackageInfo()
        info["packageName"] = name
        info["version"] = version_code
    except MemoryError as e:
        raise AllocationFailureError("Cannot allocate package info") from e
    except PyAsn1Error as e:
        raise EncodingFailureError(f"Cannot encode package info: {e}") from e
    return info


def _empty_set(set_type):
    try:
        value = set_type()
        # An empty SET OF must still encode, so make it a value
        value.clear()
    except MemoryError as e:
        raise AllocationFailureError(f"Cannot allocate {set_type.__name__}") from e
    return value


def build_attestation_application_id(
    identity: ApplicationIdentity,
    max_size: int = KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE,
    codec=None,
) -> bytes:
    """
    Build the DER encoded attestation application id for ``identity``.

    Args:
        identity: Packages sharing the caller's uid
        max_size: Target maximum payload size used for truncation
        codec: Optional codec passed to :func:`serialize`

    Returns:
        DER encoded ``AttestationApplicationId``

    Raises:
        EmptyIdentityError: If the identity has no packages
        MissingNameError: If an encoded package has no name
        AllocationFailureError: If a node cannot be allocated
        EncodingFailureError: If encoding fails
    """
    if not identity.packages:
        raise EmptyIdentityError("Application identity has no packages")

    budget = SizeBudget(max_size=max_size)
    package_infos = _empty_set(PackageInfoSet)
    signature_digests = _empty_set(SignatureDigestSet)

    for index, descriptor in enumerate(identity.packages):
        try:
            info = encode_package_info(descriptor)
        except (AllocationFailureError, EncodingFailureError) as e:
            logger.error("Building DER attestation package info failed: %s", e)
            raise
        if not budget.charge(AAID_PKG_INFO_OVERHEAD + len(info["packageName"])):
            logger.debug(
                "Attestation id size estimate exceeded, dropping %d of %d packages",
                len(identity.packages) - index, len(identity.packages),
            )
            break
        attach(package_infos, info)

    # Packages can only share a uid if they are signed with the same
    # certificates, so the first package's signatures stand for all of them.
    signatures = identity.packages[0].signatures
    digests = [signature_digest(sig) for sig in signatures]

    for index, digest in enumerate(digests):
        if not budget.charge(AAID_SIGNATURE_SIZE):
            logger.debug(
                "Attestation id size estimate exceeded, dropping %d of %d signature digests",
                len(digests) - index, len(digests),
            )
            break
        try:
            node = univ.OctetString(digest)
        except MemoryError as e:
            raise AllocationFailureError("Cannot allocate signature digest") from e
        attach(signature_digests, node)

    attestation_id = AttestationApplicationId()
    try:
        attestation_id["packageInfos"] = package_infos
        attestation_id["signatureDigests"] = signature_digests
    except PyAsn1Error as e:
        raise EncodingFailureError(f"Cannot assemble attestation application id: {e}") from e

    return serialize(attestation_id, codec=codec)
