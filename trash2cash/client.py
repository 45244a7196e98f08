"""Kiosk-side client for the station API.

The kiosk holds no server connection: it requests a session, shows the QR
payload and polls `check-session` until a user connects. Polling is a plain
loop that stops as soon as the caller sets the `cancel` event.
"""

import logging
import threading
import time
from typing import Callable

import requests

from trash2cash.core.config import settings

logger = logging.getLogger(__name__)

_CONNECTED = {"connected", "active"}


class KioskClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExpiredError(KioskClientError):
    pass


class KioskClient:
    def __init__(self, base_url: str = "", kiosk_id: str = "kiosk-1", http=None,
                 poll_interval: float | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.kiosk_id = kiosk_id
        self.http = http or requests.Session()
        if poll_interval is None:
            poll_interval = settings.POLL_INTERVAL_MS / 1000
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.auth_token: str | None = None

    def _call(self, method: str, path: str, **kwargs) -> dict | list:
        headers = kwargs.pop("headers", {})
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if isinstance(self.http, requests.Session):
            kwargs.setdefault("timeout", self.timeout)

        try:
            resp = self.http.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
        except requests.RequestException as exc:
            raise KioskClientError(f"Failed to connect to server: {exc}") from exc

        try:
            body = resp.json()
        except ValueError as exc:
            raise KioskClientError(
                f"Invalid response from server (status: {resp.status_code})", resp.status_code
            ) from exc

        if not body.get("success"):
            raise KioskClientError(body.get("message") or "Request failed", resp.status_code)
        data = body.get("data")
        return {} if data is None else data

    def request_session(self) -> dict:
        return self._call("POST", "/api/request-session", json={"kioskId": self.kiosk_id})

    def check_session(self, token: str) -> dict:
        return self._call("POST", "/api/check-session", json={"sessionToken": token})

    def wait_for_connection(self, token: str, cancel: threading.Event | None = None,
                            on_new_session: Callable[[dict], None] | None = None) -> dict | None:
        """
        Poll until the session is connected/active.

        On the first `expired` a fresh session is requested (handed to
        `on_new_session` so the kiosk can redraw its QR code) and polling
        continues; a second expiry raises SessionExpiredError. Returns None
        when `cancel` is set. The returned dict carries the token that
        finally connected under `sessionToken`.
        """
        retried = False
        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Polling cancelled")
                return None

            data = self.check_session(token)
            status = data.get("status")

            if status in _CONNECTED:
                self.auth_token = data.get("authToken")
                return {**data, "sessionToken": token}

            if status == "expired":
                if retried:
                    raise SessionExpiredError("Session expired. Please try again.")
                retried = True
                fresh = self.request_session()
                token = fresh["sessionToken"]
                logger.info("Session expired, requested a new one")
                if on_new_session is not None:
                    on_new_session(fresh)
                continue

            if cancel is not None:
                cancel.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)

    def read_sensor(self, token: str) -> dict:
        return self._call("POST", "/api/sensor-reading", json={"sessionToken": token})

    def deposit(self, token: str, material: str, weight: float) -> dict:
        return self._call("POST", "/api/deposit", json={
            "sessionToken": token,
            "material": material,
            "weight": weight,
        })

    def transactions(self) -> list:
        return self._call("GET", "/api/transactions")

    def profile(self) -> dict:
        return self._call("GET", "/api/user/profile")

    def end_session(self, token: str) -> None:
        try:
            self._call("POST", "/api/end-session", json={"sessionToken": token})
        finally:
            self.auth_token = None
