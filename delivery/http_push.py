"""Deliver records to an HTTP endpoint, one POST per record."""
from typing import Dict, Optional

import requests

from replay.errors import DeliveryError


class HttpPushSink:
    def __init__(self, push_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        if not push_url:
            raise ValueError("push_url is required")
        self.push_url = push_url
        self.timeout = timeout
        self._session = session
        self.sent = 0

    def send(self, record: Dict[str, str]) -> None:
        post = self._session.post if self._session is not None else requests.post
        try:
            r = post(self.push_url, json=record, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeliveryError(f"POST {self.push_url} failed: {e}") from e
        if r.status_code >= 400:
            raise DeliveryError(f"POST {self.push_url} returned {r.status_code}: {r.text[:200]}")
        self.sent += 1

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
