"""
Package info provider connection.

The provider answers ``get_identity_for_uid(uid)`` with the packages
installed under ``uid``. A process shares one cached provider handle
through :class:`ProviderConnection`; the handle is dropped when a
transaction fails so the next lookup reconnects.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Protocol

import requests

from .attestation.types import ApplicationIdentity

logger = logging.getLogger(__name__)

PROVIDER_SERVICE_NAME = "sec_key_att_app_id_provider"
DEFAULT_PROVIDER_URL = "http://127.0.0.1:8450"


class ErrorClass(str, Enum):
    """How a failed provider call is treated by the lookup"""
    SERVICE_SPECIFIC = "service_specific"
    TRANSACTION_FAILED = "transaction_failed"
    OTHER = "other"


class ProviderError(Exception):
    """Base class for provider call failures"""
    error_class = ErrorClass.OTHER

    def __init__(self, message: str = "", code: int = 0):
        super().__init__(message)
        self.message = message
        self.code = code


class ServiceSpecificError(ProviderError):
    """The provider ran and reported an application level error"""
    error_class = ErrorClass.SERVICE_SPECIFIC


class TransactionFailedError(ProviderError):
    """The call never completed; the connection should be reset"""
    error_class = ErrorClass.TRANSACTION_FAILED


class IdentityProvider(Protocol):
    def get_identity_for_uid(self, uid: int) -> ApplicationIdentity:
        ...


class HttpIdentityProvider:
    """Reaches the package info provider over HTTP/JSON"""

    def __init__(self, base_url: str = DEFAULT_PROVIDER_URL,
                 service_name: str = PROVIDER_SERVICE_NAME,
                 timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.service_name = service_name
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def _url(self, uid: int) -> str:
        return f"{self.base_url}/{self.service_name}/uid/{uid}"

    def get_identity_for_uid(self, uid: int) -> ApplicationIdentity:
        """
        Fetch the application identity for ``uid``.

        Raises:
            TransactionFailedError: If the request could not be completed
            ServiceSpecificError: If the provider returned an application error
            ProviderError: For any other failure
        """
        url = self._url(uid)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransactionFailedError(f"Request to {url} failed: {e}") from e
        except requests.RequestException as e:
            raise ProviderError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise self._error_from_response(response)

        try:
            return ApplicationIdentity.from_dict(response.json())
        except (ValueError, TypeError, AttributeError) as e:
            raise ProviderError(f"Invalid identity response from {url}: {e}") from e

    @staticmethod
    def _error_from_response(response: requests.Response) -> ProviderError:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and "serviceSpecificError" in body:
            try:
                code = int(body["serviceSpecificError"])
            except (TypeError, ValueError):
                code = None
            if code is not None:
                return ServiceSpecificError(str(body.get("message", "")), code=code)
        return ProviderError(
            f"{response.status_code} {response.reason}",
            code=response.status_code,
        )


class ProviderConnection:
    """
    Lazily created, shared provider handle.

    ``acquire`` returns the cached provider, connecting on first use.
    ``invalidate`` drops the cached reference; callers already holding
    the old provider may keep using it. The lock only guards the cache
    and is never held across a provider call.
    """

    def __init__(self, connect: Callable[[], IdentityProvider]):
        self._connect = connect
        self._lock = threading.Lock()
        self._provider: Optional[IdentityProvider] = None

    def acquire(self) -> IdentityProvider:
        with self._lock:
            if self._provider is None:
                logger.debug("Connecting to package info provider")
                self._provider = self._connect()
            return self._provider

    def invalidate(self) -> None:
        with self._lock:
            self._provider = None


_default_connection: Optional[ProviderConnection] = None
_default_connection_lock = threading.Lock()


def get_default_connection() -> ProviderConnection:
    """Returns the process-wide connection to the default HTTP provider"""
    global _default_connection
    with _default_connection_lock:
        if _default_connection is None:
            _default_connection = ProviderConnection(
                lambda: HttpIdentityProvider(DEFAULT_PROVIDER_URL)
            )
        return _default_connection
