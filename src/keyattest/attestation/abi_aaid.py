"""
ASN.1 layout of the attestation application id.

The payload embedded in a key attestation certificate is::

    AttestationApplicationId ::= SEQUENCE {
        package_infos      SET OF KeyAttestationPackageInfo,
        signature_digests  SET OF OCTET STRING,
    }

    KeyAttestationPackageInfo ::= SEQUENCE {
        package_name  OCTET STRING,
        version       INTEGER,
    }

The size constants below are conservative per-entry estimates used to
truncate the payload before encoding. They are not exact DER lengths.
"""

from pyasn1.type import namedtype, univ

from .types import SHA256_DIGEST_SIZE


# 4 bytes for the package name header + package name length,
# 11 bytes for the version (2 bytes header and up to 9 bytes of data)
AAID_PKG_INFO_OVERHEAD = 15

# 32 bytes of digest + 2 bytes header per signature digest
AAID_SIGNATURE_SIZE = SHA256_DIGEST_SIZE + 2

# 4 for the header of the octet string carrying the encoded data,
# 4 for the sequence header, 4 for each of the two set headers
AAID_GENERAL_OVERHEAD = 16


class KeyAttestationPackageInfo(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("packageName", univ.OctetString()),
        namedtype.NamedType("version", univ.Integer()),
    )


class PackageInfoSet(univ.SetOf):
    componentType = KeyAttestationPackageInfo()


class SignatureDigestSet(univ.SetOf):
    componentType = univ.OctetString()


class AttestationApplicationId(univ.Sequence):
    componentType = namedtype.NamedTypes(
        namedtype.NamedType("packageInfos", PackageInfoSet()),
        namedtype.NamedType("signatureDigests", SignatureDigestSet()),
    )
