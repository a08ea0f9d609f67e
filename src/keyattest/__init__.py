from .attestation import (
    build_attestation_application_id,
    ApplicationIdentity,
    PackageDescriptor,
    AttestationIdError,
    MissingNameError,
    EmptyIdentityError,
    AllocationFailureError,
    EncodingFailureError,
    AttestationIdLookupFailedError,
)
from .lookup import (
    gather_identity,
    gather_attestation_application_id,
    RetryPolicy,
)
from .provider import (
    ProviderConnection,
    HttpIdentityProvider,
    ProviderError,
    ServiceSpecificError,
    TransactionFailedError,
    get_default_connection,
)

__all__ = [
    "build_attestation_application_id",
    "gather_identity",
    "gather_attestation_application_id",
    "RetryPolicy",
    "ApplicationIdentity",
    "PackageDescriptor",
    "AttestationIdError",
    "MissingNameError",
    "EmptyIdentityError",
    "AllocationFailureError",
    "EncodingFailureError",
    "AttestationIdLookupFailedError",
    "ProviderConnection",
    "HttpIdentityProvider",
    "ProviderError",
    "ServiceSpecificError",
    "TransactionFailedError",
    "get_default_connection",
]
