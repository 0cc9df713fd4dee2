# marketplace/services/push_client.py
from typing import Any, Dict

import requests

from marketplace.utils.retry import http_retry
from marketplace.utils.settings import PUSH_SERVICE_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class PushClient:
    """Klient HTTP do zewnetrznej bramki push (klient / sklep / kurier)."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PUSH_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def send(
        self,
        recipient_type: str,
        recipient_id: str,
        title: str,
        body: str,
        data: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}/notifications"
        logger.info(f"PushClient POST {url} -> {recipient_type}:{recipient_id}")

        resp = requests.post(
            url,
            json={
                "recipient_type": recipient_type,
                "recipient_id": recipient_id,
                "title": title,
                "body": body,
                "data": data or {},
            },
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()
