from .encoder import (
    build_attestation_application_id,
    encode_package_info,
    signature_digest,
    would_exceed_budget,
)
from .der import DerCodec, serialize
from .cert_utils import CertificateParseError, load_signatures_pem, parse_pem_chain
from .types import (
    ApplicationIdentity,
    PackageDescriptor,
    AttestationIdError,
    MissingNameError,
    EmptyIdentityError,
    AllocationFailureError,
    EncodingFailureError,
    AttestationIdLookupFailedError,
    KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE,
)

__all__ = [
    'build_attestation_application_id',
    'encode_package_info',
    'signature_digest',
    'would_exceed_budget',
    'DerCodec',
    'serialize',
    'CertificateParseError',
    'load_signatures_pem',
    'parse_pem_chain',
    'ApplicationIdentity',
    'PackageDescriptor',
    'AttestationIdError',
    'MissingNameError',
    'EmptyIdentityError',
    'AllocationFailureError',
    'EncodingFailureError',
    'AttestationIdLookupFailedError',
    'KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE',
]
