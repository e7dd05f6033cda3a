"""HTTP client for the social feed API."""

import logging
from typing import Optional

import httpx


class ApiRequestError(RuntimeError):
    """A request failed. status_code is 0 when the server was never reached."""

    def __init__(self, status_code: int, error: str, details: Optional[str] = None):
        super().__init__(f"{status_code}: {error}")
        self.status_code = status_code
        self.error = error
        self.details = details

    @property
    def is_conflict(self) -> bool:
        return self.status_code == 409


class SocialApiClient:
    """Thin wrapper over httpx.Client that unwraps the error envelope."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 10.0, transport=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        self.client.close()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logging.warning(f"{method} {url} failed before a response: {e}")
            raise ApiRequestError(0, "Network error", str(e)) from e

        if response.is_success:
            return response.json()

        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        details = body.get("details") if isinstance(body, dict) else None
        raise ApiRequestError(response.status_code, error or response.reason_phrase, details)

    def get_posts(self, page: int = 1, limit: int = 10, user_id: Optional[str] = None) -> dict:
        params = {"page": page, "limit": limit}
        if user_id:
            params["userId"] = user_id
        return self._request("GET", "/api/posts", params=params)

    def get_user(self, user_id: str) -> dict:
        return self._request("GET", f"/api/users/{user_id}")

    def like(self, post_id: str) -> dict:
        return self._request("POST", "/api/likes", json={"postId": post_id})

    def unlike(self, post_id: str) -> dict:
        return self._request("DELETE", f"/api/likes/{post_id}")

    def follow(self, user_id: str) -> dict:
        return self._request("POST", "/api/follows", json={"followingId": user_id})

    def unfollow(self, user_id: str) -> dict:
        return self._request("DELETE", f"/api/follows/{user_id}")
