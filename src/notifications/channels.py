# src/notifications/channels.py
"""
External notification channels.

  - EmailChannel: Resend REST API (POST /emails)
  - WhatsAppChannel: Twilio Messages API (form-encoded, basic auth)

Both use httpx.AsyncClient with per-request timeouts and share a
per-channel circuit breaker: repeated failures inside the window open the
circuit so a dead provider does not stall the dispatcher. All failures are
raised as NotificationDeliveryError.
"""

import time
import logging
from collections import deque
from typing import Optional, Dict, Any, List

import httpx

from src.config import settings
from src.errors import NotificationDeliveryError

logger = logging.getLogger("designdesk.notifications.channels")


# =============================================================================
# Circuit Breaker (Per-Channel)
# =============================================================================

class ChannelCircuitBreaker:
    """Opens a channel after failure_threshold failures within window_seconds"""

    def __init__(self, failure_threshold: int = 3, window_seconds: int = 60):
        self.failure_threshold = failure_threshold
        self.window_seconds = window_seconds
        self._failures: Dict[str, deque] = {}
        self._open_until: Dict[str, float] = {}

    def _prune(self, channel: str) -> deque:
        failures = self._failures.setdefault(channel, deque())
        cutoff = time.time() - self.window_seconds
        while failures and failures[0] < cutoff:
            failures.popleft()
        return failures

    def is_open(self, channel: str) -> bool:
        if channel in self._open_until:
            if time.time() < self._open_until[channel]:
                return True
            del self._open_until[channel]
            self._failures[channel] = deque()
            logger.info(f"Circuit breaker reset for channel '{channel}'")
        return False

    def record_failure(self, channel: str) -> None:
        failures = self._prune(channel)
        failures.append(time.time())
        logger.warning(
            f"Delivery failure on '{channel}': "
            f"{len(failures)}/{self.failure_threshold} in {self.window_seconds}s window"
        )
        if len(failures) >= self.failure_threshold:
            self._open_until[channel] = time.time() + self.window_seconds
            logger.error(f"Circuit breaker OPEN for channel '{channel}'")

    def record_success(self, channel: str) -> None:
        self._failures.pop(channel, None)
        self._open_until.pop(channel, None)

    def get_failure_count(self, channel: str) -> int:
        return len(self._prune(channel))


# =============================================================================
# Base Channel
# =============================================================================

class HttpChannel:
    """Shared httpx plumbing for REST-backed channels"""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = settings.NOTIFICATION_TIMEOUT,
        circuit_breaker: Optional[ChannelCircuitBreaker] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._circuit_breaker = circuit_breaker or ChannelCircuitBreaker()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return True

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(base_url=self.base_url, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, **kwargs) -> Dict[str, Any]:
        if self._circuit_breaker.is_open(self.name):
            raise NotificationDeliveryError(
                message=f"Circuit breaker open for channel '{self.name}'",
                channel=self.name,
                error_code="CIRCUIT_OPEN"
            )

        try:
            client = await self._get_client()
            response = await client.post(path, timeout=httpx.Timeout(self.timeout), **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            self._circuit_breaker.record_failure(self.name)
            raise NotificationDeliveryError(
                message=f"Timeout after {self.timeout}s",
                channel=self.name,
                error_code="TIMEOUT",
                original_error=e
            )
        except httpx.HTTPStatusError as e:
            self._circuit_breaker.record_failure(self.name)
            raise NotificationDeliveryError(
                message=f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                channel=self.name,
                error_code=f"HTTP_{e.response.status_code}",
                original_error=e
            )
        except httpx.HTTPError as e:
            self._circuit_breaker.record_failure(self.name)
            raise NotificationDeliveryError(
                message=f"Connection error: {e}",
                channel=self.name,
                error_code="CONNECTION_ERROR",
                original_error=e
            )

        self._circuit_breaker.record_success(self.name)
        try:
            return response.json()
        except ValueError:
            return {}


# =============================================================================
# Email (Resend)
# =============================================================================

class EmailChannel(HttpChannel):
    name = "email"

    def __init__(
        self,
        api_key: Optional[str] = settings.RESEND_API_KEY,
        sender: str = settings.EMAIL_FROM,
        base_url: str = settings.RESEND_API_URL,
        **kwargs
    ):
        super().__init__(base_url=base_url, **kwargs)
        self.api_key = api_key
        self.sender = sender

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, to: List[str], subject: str, html: str, text: Optional[str] = None) -> bool:
        """Send one email. Returns False when the channel is not configured."""
        if not self.is_configured:
            logger.debug(f"Email channel not configured - skipping '{subject}'")
            return False
        if not to:
            return False

        payload = {"from": self.sender, "to": to, "subject": subject, "html": html}
        if text:
            payload["text"] = text

        data = await self._post(
            "/emails",
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"}
        )
        logger.info(f"Email sent | to={len(to)} recipients | subject='{subject}' | id={data.get('id')}")
        return True


# =============================================================================
# WhatsApp (Twilio)
# =============================================================================

def _whatsapp_address(number: str) -> str:
    number = number.strip()
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class WhatsAppChannel(HttpChannel):
    name = "whatsapp"

    def __init__(
        self,
        account_sid: Optional[str] = settings.TWILIO_ACCOUNT_SID,
        auth_token: Optional[str] = settings.TWILIO_AUTH_TOKEN,
        from_number: Optional[str] = settings.TWILIO_WHATSAPP_NUMBER,
        base_url: str = settings.TWILIO_API_URL,
        **kwargs
    ):
        super().__init__(base_url=base_url, **kwargs)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, to: str, body: str) -> bool:
        """Send one WhatsApp message. Returns False when not configured."""
        if not self.is_configured:
            logger.debug("WhatsApp channel not configured - skipping message")
            return False
        if not to:
            return False

        data = await self._post(
            f"/Accounts/{self.account_sid}/Messages.json",
            data={
                "From": _whatsapp_address(self.from_number),
                "To": _whatsapp_address(to),
                "Body": body,
            },
            auth=(self.account_sid, self.auth_token)
        )
        logger.info(f"WhatsApp sent | sid={data.get('sid')}")
        return True
