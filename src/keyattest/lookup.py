"""
Caller identity lookup and attestation application id assembly.

Privileged callers get a fixed identity. Everyone else is looked up at the
package info provider, retrying a fixed number of times and resetting the
shared connection when a transaction fails.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .attestation.encoder import build_attestation_application_id
from .attestation.types import (
    AID_ROOT,
    AID_SYSTEM,
    KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE,
    ApplicationIdentity,
    AttestationIdLookupFailedError,
    system_identity,
)
from .provider import (
    ErrorClass,
    ProviderConnection,
    ProviderError,
    get_default_connection,
)

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_INTERVAL = 0.5  # seconds


@dataclass
class RetryPolicy:
    """Attempt budget and pause between provider calls"""
    max_attempts: int = MAX_ATTEMPTS
    retry_interval: float = RETRY_INTERVAL


def is_privileged(uid: int) -> bool:
    return uid in (AID_ROOT, AID_SYSTEM)


def _handle_failure(uid: int, error: ProviderError, connection: ProviderConnection) -> None:
    if error.error_class == ErrorClass.SERVICE_SPECIFIC:
        logger.warning(
            "Retry: get attestation ID for %d failed with service specific error: %s %d",
            uid, error.message, error.code,
        )
    elif error.error_class == ErrorClass.TRANSACTION_FAILED:
        logger.warning(
            "Retry: get attestation ID for %d transaction failed, reset connection: %s %d",
            uid, error.message, error.code,
        )
        connection.invalidate()
    else:
        logger.warning(
            "Retry: get attestation ID for %d failed with error: %s %d",
            uid, error.message, error.code,
        )


def gather_identity(
    uid: int,
    connection: Optional[ProviderConnection] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ApplicationIdentity:
    """
    Resolve the application identity of ``uid``.

    Args:
        uid: Caller uid
        connection: Provider connection, defaults to the process-wide one
        policy: Retry budget, defaults to 3 attempts 500 ms apart
        sleep: Blocking sleep used between attempts

    Returns:
        The caller's ApplicationIdentity

    Raises:
        AttestationIdLookupFailedError: If every attempt failed
    """
    if is_privileged(uid):
        return system_identity()

    if connection is None:
        connection = get_default_connection()
    if policy is None:
        policy = RetryPolicy()

    last_error: Optional[ProviderError] = None
    for attempt in range(policy.max_attempts):
        if attempt > 0:
            sleep(policy.retry_interval)
        provider = connection.acquire()
        try:
            return provider.get_identity_for_uid(uid)
        except ProviderError as e:
            last_error = e
            _handle_failure(uid, e, connection)

    message = last_error.message if last_error is not None else ""
    code = last_error.code if last_error is not None else 0
    logger.warning(
        "package manager request for key attestation ID failed with: %s %d",
        message, code,
    )
    raise AttestationIdLookupFailedError(
        f"Attestation id lookup for uid {uid} failed after {policy.max_attempts} attempts"
    ) from last_error


def gather_attestation_application_id(
    uid: int,
    connection: Optional[ProviderConnection] = None,
    policy: Optional[RetryPolicy] = None,
    max_size: int = KEY_ATTESTATION_APPLICATION_ID_MAX_SIZE,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """Look up ``uid`` and return its DER encoded attestation application id"""
    identity = gather_identity(uid, connection=connection, policy=policy, sleep=sleep)
    return build_attestation_application_id(identity, max_size=max_size)
