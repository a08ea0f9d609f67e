"""
Unit tests for identity types and error codes (types.py).
"""

import base64

import pytest

from keyattest.attestation.types import (
    AllocationFailureError,
    ApplicationIdentity,
    AttestationIdError,
    AttestationIdLookupFailedError,
    EmptyIdentityError,
    EncodingFailureError,
    MissingNameError,
    PackageDescriptor,
    ResponseCode,
    StatusCode,
    system_identity,
)


class TestFromDict:
    """Tests for building identities from provider JSON."""

    def test_package_descriptor(self):
        descriptor = PackageDescriptor.from_dict({
            "packageName": "com.example",
            "versionCode": 2 ** 40,
            "signatures": [base64.b64encode(b"one").decode(), base64.b64encode(b"two").decode()],
        })
        assert descriptor == PackageDescriptor(
            name="com.example", version_code=2 ** 40, signatures=[b"one", b"two"]
        )

    def test_missing_fields_default(self):
        descriptor = PackageDescriptor.from_dict({})
        assert descriptor.name is None
        assert descriptor.version_code == 0
        assert descriptor.signatures == []

    def test_boolean_version_rejected(self):
        with pytest.raises(ValueError):
            PackageDescriptor.from_dict({"packageName": "x", "versionCode": True})

    @pytest.mark.parametrize("name", [5, b"com.example", ["com.example"], {"n": 1}])
    def test_non_text_name_rejected(self, name):
        with pytest.raises(ValueError, match="packageName"):
            PackageDescriptor.from_dict({"packageName": name, "versionCode": 1})

    @pytest.mark.parametrize("data", ["com.example", 5, None, ["x"]])
    def test_non_object_package_info_rejected(self, data):
        with pytest.raises(ValueError):
            PackageDescriptor.from_dict(data)

    def test_identity_with_non_object_entries_rejected(self):
        with pytest.raises(ValueError):
            ApplicationIdentity.from_dict({"packageInfos": ["com.example", 3]})

    def test_non_object_identity_rejected(self):
        with pytest.raises(ValueError):
            ApplicationIdentity.from_dict(["not", "a", "dict"])

    def test_identity_keeps_order(self):
        identity = ApplicationIdentity.from_dict({
            "packageInfos": [
                {"packageName": "b", "versionCode": 1},
                {"packageName": "a", "versionCode": 2},
            ],
        })
        assert [p.name for p in identity.packages] == ["b", "a"]

    def test_identity_requires_list(self):
        with pytest.raises(ValueError):
            ApplicationIdentity.from_dict({"packageInfos": None})


class TestWithSignatures:
    """Tests for replacing the first package's signatures."""

    def test_replaces_first_package_only(self):
        identity = ApplicationIdentity(packages=[
            PackageDescriptor(name="a", version_code=1, signatures=[b"old"]),
            PackageDescriptor(name="b", version_code=2, signatures=[b"other"]),
        ])

        updated = identity.with_signatures([b"new1", b"new2"])

        assert updated.packages[0] == PackageDescriptor(
            name="a", version_code=1, signatures=[b"new1", b"new2"]
        )
        assert updated.packages[1] == identity.packages[1]
        assert identity.packages[0].signatures == [b"old"]

    def test_empty_identity(self):
        with pytest.raises(EmptyIdentityError):
            ApplicationIdentity().with_signatures([b"cert"])


class TestErrorCodes:
    """Each error carries the status code surfaced to callers."""

    @pytest.mark.parametrize("error_type,code", [
        (MissingNameError, StatusCode.BAD_VALUE),
        (EmptyIdentityError, StatusCode.BAD_VALUE),
        (AllocationFailureError, StatusCode.NO_MEMORY),
        (EncodingFailureError, StatusCode.UNKNOWN_ERROR),
        (AttestationIdLookupFailedError, ResponseCode.GET_ATTESTATION_APPLICATION_ID_FAILED),
    ])
    def test_codes(self, error_type, code):
        assert issubclass(error_type, AttestationIdError)
        assert error_type("x").code == code


def test_system_identity():
    identity = system_identity()
    assert len(identity.packages) == 1
    assert identity.packages[0].name == "AndroidSystem"
    assert identity.packages[0].version_code == 1
    assert identity.packages[0].signatures == []
