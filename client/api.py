"""
client/api.py -- HTTP client for the /api/auth endpoints.

Wraps a requests.Session (or anything with the same request() surface, such as
FastAPI's TestClient) and attaches the current bearer token to every request.

Failures surface as ApiError:
  status is the HTTP status for server rejections (401, 409, 500...),
  status is None for transport failures (connection refused, timeout).
The message is the envelope's `message` when the server sent one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import requests

logger = logging.getLogger("barnacle.client")


class ApiError(Exception):
    def __init__(self, message: str, status: int | None = None, data: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data or {}

    @property
    def is_auth_error(self) -> bool:
        return self.status in (401, 403)


class AuthApi:
    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], str | None] = lambda: None,
        http: Any = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        if http is None:
            http = requests.Session()
            http.max_redirects = 3
        self.http = http

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def signup(
        self,
        full_name: str,
        email: str,
        password: str,
        role: str | None = None,
        agree_to_terms: bool = False,
    ) -> dict:
        body = {
            "fullName": full_name,
            "email": email,
            "password": password,
            "agreeToTerms": agree_to_terms,
        }
        if role:
            body["role"] = role
        return self._request("POST", "/auth/signup", json=body)

    def login(self, email: str, password: str, remember_me: bool = False) -> dict:
        return self._request(
            "POST",
            "/auth/login",
            json={"email": email, "password": password, "rememberMe": remember_me},
        )

    def logout(self) -> dict:
        return self._request("POST", "/auth/logout")

    def get_profile(self) -> dict:
        return self._request("GET", "/auth/me")

    def verify_token(self, token: str) -> dict:
        return self._request("POST", "/auth/verify", json={"token": token})

    def promote_user(self, user_id: str, new_role: str) -> dict:
        return self._request("PUT", "/auth/promote-user", json={"userId": user_id, "newRole": new_role})

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        headers = {"Content-Type": "application/json"}
        token = self.token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        try:
            resp = self.http.request(method, url, json=json, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError("Network error occurred", status=None) from exc

        if resp.status_code == 204:
            return {}
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not 200 <= resp.status_code < 300:
            message = data.get("message") or f"API request failed ({resp.status_code})"
            raise ApiError(message, status=resp.status_code, data=data)
        return data
