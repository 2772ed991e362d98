"""
BaseSites Backend: Identity Gateway
===================================

What:  The two calls the backend makes to the external identity provider:
       verify a bearer token, and delete an identity.
How:   `IdentityGateway` is the abstract contract; `HttpIdentityGateway`
       speaks the GoTrue REST API (Supabase Auth) over httpx. Network
       errors and 5xx answers are retried with tenacity; repeated failures
       open a circuit breaker so requests fail fast instead of queueing
       behind a dead provider.
Who:   Built once in the application lifespan and stored on `app.state`;
       resolved per request by `get_identity_gateway()` in middleware/auth.py.

Error mapping:
    401/403 from provider           → UnauthorizedError ("Invalid or expired token")
    network error / 5xx, retries out → UpstreamError (and a breaker failure)
    breaker open                     → UpstreamError with retry_after
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

import httpx
from pydantic import BaseModel
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from basesites.config import settings
from basesites.exceptions import UnauthorizedError, UpstreamError

logger = logging.getLogger(__name__)


class IdentityUser(BaseModel):
    """The verified subject of a bearer token."""

    id: UUID
    email: Optional[str] = None


class IdentityGateway(ABC):
    """Contract for the external identity provider."""

    @abstractmethod
    async def verify_token(self, token: str) -> IdentityUser:
        """
        Resolve a bearer token to its user.

        Raises:
            UnauthorizedError: The provider rejected the token.
            UpstreamError: The provider could not be reached.
        """
        ...

    @abstractmethod
    async def delete_identity(self, user_id: UUID) -> None:
        """Remove the identity. An identity that is already gone is not an error."""
        ...

    @property
    def circuit_state(self) -> str:
        return CircuitBreaker.CLOSED

    async def aclose(self) -> None:
        return None


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════


class CircuitBreaker:
    """
    CLOSED → (threshold consecutive failures) → OPEN
    OPEN → (recovery_timeout elapsed) → HALF_OPEN, one trial call allowed
    HALF_OPEN → success → CLOSED, failure → OPEN

    Single-process state; each worker keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 30):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def before_call(self) -> None:
        """Raises UpstreamError while the circuit is open."""
        if self.state != self.OPEN:
            return
        elapsed = time.monotonic() - (self.last_failure_time or 0)
        if elapsed >= self.recovery_timeout:
            logger.info("Identity circuit HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
            return
        remaining = max(1, int(self.recovery_timeout - elapsed))
        raise UpstreamError(
            message="The identity service is temporarily unavailable. Please try again shortly.",
            retry_after=remaining,
        )

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Identity circuit CLOSED (provider recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.monotonic()
        if self.state == self.HALF_OPEN:
            logger.warning("Identity circuit back to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Identity circuit OPEN after %d consecutive failures", self.failure_count
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# HTTP Implementation
# ══════════════════════════════════════════════════════════════════════════


class _TransientProviderError(Exception):
    """A 5xx or 429 from the provider; worth another attempt."""

    def __init__(self, status_code: int):
        super().__init__(f"identity provider answered {status_code}")
        self.status_code = status_code


_retry_transient = retry(
    retry=retry_if_exception_type((httpx.TransportError, _TransientProviderError)),
    stop=stop_after_attempt(settings.retry_max_attempts),
    wait=wait_exponential_jitter(
        initial=settings.retry_min_wait,
        max=settings.retry_max_wait,
        jitter=1,
    ),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


def _raise_for_transient(response: httpx.Response) -> None:
    if response.status_code >= 500 or response.status_code == 429:
        raise _TransientProviderError(response.status_code)


class HttpIdentityGateway(IdentityGateway):
    """
    GoTrue REST client.

        GET    {base}/auth/v1/user              apikey: anon,    Bearer <user token>
        DELETE {base}/auth/v1/admin/users/{id}  apikey: service, Bearer <service key>
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        service_key: str,
        timeout: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.anon_key = anon_key
        self.service_key = service_key
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls) -> "HttpIdentityGateway":
        return cls(
            base_url=settings.identity_url,
            anon_key=settings.identity_anon_key,
            service_key=settings.identity_service_key,
            timeout=settings.identity_timeout_seconds,
            circuit_breaker=CircuitBreaker(
                failure_threshold=settings.cb_failure_threshold,
                recovery_timeout=settings.cb_recovery_timeout,
            ),
        )

    @property
    def circuit_state(self) -> str:
        return self.circuit_breaker.state

    async def aclose(self) -> None:
        await self._client.aclose()

    async def verify_token(self, token: str) -> IdentityUser:
        self.circuit_breaker.before_call()
        try:
            response = await self._get_user(token)
        except (httpx.TransportError, _TransientProviderError) as e:
            self.circuit_breaker.record_failure()
            logger.error("Token verification failed upstream: %s", e)
            raise UpstreamError(context={"operation": "verify_token"})

        self.circuit_breaker.record_success()
        if response.status_code in (400, 401, 403, 404):
            raise UnauthorizedError("Invalid or expired token")
        if response.status_code != 200:
            logger.error("Unexpected identity response %d on verify", response.status_code)
            raise UpstreamError(context={"status_code": response.status_code})

        payload = response.json()
        try:
            return IdentityUser(id=payload["id"], email=payload.get("email"))
        except (KeyError, ValueError):
            logger.error("Identity provider returned a user without a usable id")
            raise UnauthorizedError("Invalid or expired token")

    async def delete_identity(self, user_id: UUID) -> None:
        self.circuit_breaker.before_call()
        try:
            response = await self._delete_user(user_id)
        except (httpx.TransportError, _TransientProviderError) as e:
            self.circuit_breaker.record_failure()
            logger.error("Identity deletion failed upstream for %s: %s", user_id, e)
            raise UpstreamError(
                message="The account could not be deleted right now. Please try again later.",
                context={"operation": "delete_identity"},
            )

        self.circuit_breaker.record_success()
        if response.status_code == 404:
            logger.info("Identity %s already absent", user_id)
            return
        if response.status_code >= 400:
            logger.error("Identity deletion for %s answered %d", user_id, response.status_code)
            raise UpstreamError(
                message="The account could not be deleted right now. Please try again later.",
                context={"status_code": response.status_code},
            )
        logger.info("Identity %s deleted", user_id)

    @_retry_transient
    async def _get_user(self, token: str) -> httpx.Response:
        response = await self._client.get(
            "/auth/v1/user",
            headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
        )
        _raise_for_transient(response)
        return response

    @_retry_transient
    async def _delete_user(self, user_id: UUID) -> httpx.Response:
        response = await self._client.delete(
            f"/auth/v1/admin/users/{user_id}",
            headers={
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
            },
        )
        _raise_for_transient(response)
        return response
