"""
Tests for the package info provider connection and HTTP adapter (provider.py).
"""

import base64
import threading
import time

import pytest
import requests
from unittest.mock import MagicMock

from keyattest.attestation.types import (
    ApplicationIdentity,
    AttestationIdLookupFailedError,
    PackageDescriptor,
)
from keyattest.lookup import gather_attestation_application_id
from keyattest.provider import (
    PROVIDER_SERVICE_NAME,
    ErrorClass,
    HttpIdentityProvider,
    ProviderConnection,
    ProviderError,
    ServiceSpecificError,
    TransactionFailedError,
    get_default_connection,
)


def make_response(status_code=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


def make_provider(response=None, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    return HttpIdentityProvider("http://provider.test/", session=session, timeout=5.0), session


# =============================================================================
# ProviderConnection
# =============================================================================

class TestProviderConnection:
    """Tests for the cached provider handle."""

    def test_acquire_is_lazy_and_cached(self):
        connect = MagicMock(side_effect=lambda: object())
        connection = ProviderConnection(connect)
        connect.assert_not_called()

        first = connection.acquire()
        second = connection.acquire()

        assert first is second
        assert connect.call_count == 1

    def test_invalidate_forces_reconnect(self):
        connect = MagicMock(side_effect=lambda: object())
        connection = ProviderConnection(connect)

        old = connection.acquire()
        connection.invalidate()
        new = connection.acquire()

        assert old is not new
        assert connect.call_count == 2

    def test_invalidate_keeps_held_references_usable(self):
        provider = MagicMock()
        provider.get_identity_for_uid.return_value = ApplicationIdentity()
        connection = ProviderConnection(lambda: provider)

        held = connection.acquire()
        connection.invalidate()

        assert held.get_identity_for_uid(1) == ApplicationIdentity()

    def test_concurrent_acquire_connects_once(self):
        def slow_connect():
            time.sleep(0.05)
            return object()

        connect = MagicMock(side_effect=slow_connect)
        connection = ProviderConnection(connect)
        results = []

        threads = [
            threading.Thread(target=lambda: results.append(connection.acquire()))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert connect.call_count == 1
        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_default_connection_is_shared(self):
        assert get_default_connection() is get_default_connection()
        assert isinstance(get_default_connection(), ProviderConnection)


# =============================================================================
# HttpIdentityProvider
# =============================================================================

class TestHttpIdentityProvider:
    """Tests for the requests based provider adapter."""

    def test_success(self):
        body = {
            "packageInfos": [
                {
                    "packageName": "com.example.app",
                    "versionCode": 12,
                    "signatures": [base64.b64encode(b"cert").decode()],
                },
            ],
        }
        provider, session = make_provider(make_response(body=body))

        identity = provider.get_identity_for_uid(10001)

        assert identity == ApplicationIdentity(packages=[
            PackageDescriptor(name="com.example.app", version_code=12, signatures=[b"cert"]),
        ])
        session.get.assert_called_once_with(
            f"http://provider.test/{PROVIDER_SERVICE_NAME}/uid/10001", timeout=5.0
        )

    @pytest.mark.parametrize("exc", [
        requests.ConnectionError("refused"),
        requests.Timeout("slow"),
    ])
    def test_transport_failure(self, exc):
        provider, _ = make_provider(side_effect=exc)

        with pytest.raises(TransactionFailedError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert exc_info.value.error_class == ErrorClass.TRANSACTION_FAILED

    def test_other_request_failure(self):
        provider, _ = make_provider(side_effect=requests.TooManyRedirects("loop"))

        with pytest.raises(ProviderError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert exc_info.value.error_class == ErrorClass.OTHER

    def test_service_specific_error(self):
        response = make_response(
            status_code=500,
            body={"serviceSpecificError": 4, "message": "package not found"},
            reason="Internal Server Error",
        )
        provider, _ = make_provider(response)

        with pytest.raises(ServiceSpecificError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert exc_info.value.code == 4
        assert exc_info.value.message == "package not found"
        assert exc_info.value.error_class == ErrorClass.SERVICE_SPECIFIC

    def test_http_error_without_body(self):
        response = make_response(status_code=404, body=ValueError("no json"), reason="Not Found")
        provider, _ = make_provider(response)

        with pytest.raises(ProviderError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert type(exc_info.value) is ProviderError
        assert exc_info.value.code == 404

    @pytest.mark.parametrize("body", [
        {"unexpected": True},
        {"packageInfos": [{"packageName": "x", "signatures": ["not base64!"]}]},
        {"packageInfos": [{"packageName": "x", "versionCode": "12"}]},
        {"packageInfos": [{"packageName": 5, "versionCode": 1}]},
        {"packageInfos": [{"packageName": ["com.example"], "versionCode": 1}]},
        {"packageInfos": ["com.example.app"]},
        ["not", "a", "dict"],
    ])
    def test_malformed_body(self, body):
        provider, _ = make_provider(make_response(body=body))

        with pytest.raises(ProviderError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert exc_info.value.error_class == ErrorClass.OTHER

    @pytest.mark.parametrize("code", [None, "busy", {"nested": 1}])
    def test_service_specific_error_with_bad_code(self, code):
        response = make_response(
            status_code=500,
            body={"serviceSpecificError": code, "message": "package not found"},
            reason="Internal Server Error",
        )
        provider, _ = make_provider(response)

        with pytest.raises(ProviderError) as exc_info:
            provider.get_identity_for_uid(10001)
        assert type(exc_info.value) is ProviderError
        assert exc_info.value.code == 500

    def test_malformed_body_is_retried_by_lookup(self):
        """A bad body surfaces as a lookup failure, never as a raw exception."""
        response = make_response(body={"packageInfos": [{"packageName": 5, "versionCode": 1}]})
        provider, session = make_provider(response)
        connection = ProviderConnection(lambda: provider)

        with pytest.raises(AttestationIdLookupFailedError) as exc_info:
            gather_attestation_application_id(10001, connection=connection, sleep=MagicMock())

        assert session.get.call_count == 3
        assert isinstance(exc_info.value.__cause__, ProviderError)
