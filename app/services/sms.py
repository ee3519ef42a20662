"""
Solapi SMS transport.

Requests are signed with HMAC-SHA256 over (date + salt) using the API
secret. The whole batch goes out in one call; any failure is reported as a
single TransportFailure.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.utils.errors import service_error

logger = logging.getLogger(__name__)


class SolapiSender:
    """Sends SMS through the Solapi REST API."""

    def __init__(
        self,
        api_key: str = None,
        api_secret: str = None,
        sender: str = None,
        base_url: str = None,
        timeout: int = None,
    ):
        self.api_key = api_key or settings.SOLAPI_API_KEY
        self.api_secret = api_secret or settings.SOLAPI_API_SECRET
        self.sender = sender or settings.SOLAPI_SENDER
        self.base_url = (base_url or settings.SOLAPI_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.SMS_TIMEOUT

    def _auth_header(self) -> str:
        date = datetime.now(timezone.utc).isoformat()
        salt = secrets.token_hex(16)
        signature = hmac.new(
            self.api_secret.encode("utf-8"),
            (date + salt).encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        return f"HMAC-SHA256 apiKey={self.api_key}, date={date}, salt={salt}, signature={signature}"

    def _post_messages(self, messages: List[Dict[str, str]]) -> dict:
        payload = {
            "messages": [
                {"to": m["to"], "from": self.sender, "text": m["text"]}
                for m in messages
            ]
        }
        try:
            response = requests.post(
                f"{self.base_url}/messages/v4/send-many/detail",
                json=payload,
                headers={
                    "Authorization": self._auth_header(),
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"SMS batch of {len(messages)} failed: {e}")
            raise service_error('SMS_FAILED', f"SMS delivery failed: {e}") from e

        return response.json()

    async def send(self, to: str, text: str) -> dict:
        return await self.send_bulk([{"to": to, "text": text}])

    async def send_bulk(self, messages: List[Dict[str, str]]) -> Optional[dict]:
        """Send a batch; an empty batch is a no-op returning None."""
        if not messages:
            return None
        result = await run_in_threadpool(self._post_messages, messages)
        logger.info(f"SMS batch of {len(messages)} accepted by Solapi")
        return result


def get_sms_sender() -> SolapiSender:
    """Dependency: SMS transport"""
    return SolapiSender()
