"""
Delivery of queued offline writes to the remote sync endpoint.
"""

from typing import Any, Dict, Optional
import logging

import httpx

from app.exceptions import SyncTransportError

logger = logging.getLogger("labeliq.sync")


class HttpSyncTransport:
    """POSTs one queued item at a time to the configured endpoint"""

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    def send(self, item_id: str, item_type: str, payload: Dict[str, Any]) -> None:
        """
        Deliver one item.

        Raises:
            SyncTransportError: If the endpoint is unreachable or rejects the item
        """
        body = {"id": item_id, "type": item_type, "payload": payload}
        try:
            if self._client is not None:
                response = self._client.post(self.url, json=body, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.url, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SyncTransportError(
                f"Sync endpoint rejected {item_id}: {e.response.status_code}",
                details={"status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise SyncTransportError(f"Sync endpoint unreachable: {e}") from e

        logger.debug(f"Synced {item_type} {item_id}")
