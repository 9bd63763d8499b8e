"""GitLab REST API integration."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from .constants import API_PREFIX, HTTP_TIMEOUT_S, TOKEN_HEADER
from .exceptions import (
    ClientHttpError,
    DeserializeError,
    HttpError,
    NotFoundError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from .models import Runner, RunnerFilters, RunnerManager, User

logger = logging.getLogger(__name__)


def classify_http_error(status_code: int, endpoint: str, body: str) -> HttpError:
    """Map a non-2xx status to the matching HttpError subclass."""
    message = f"GitLab API returned {status_code} for {endpoint}"
    if body:
        message = f"{message}: {body[:200]}"
    if status_code in (401, 403):
        cls: type[HttpError] = UnauthorizedError
    elif status_code == 404:
        cls = NotFoundError
    elif status_code >= 500:
        cls = ServerError
    else:
        cls = ClientHttpError
    return cls(message, status_code=status_code, endpoint=endpoint)


class GitLabClient:
    """Thin client issuing one HTTP call per logical operation.

    The underlying ``requests.Session`` only carries connection pooling and
    the auth header, so one client is shared by all enrichment workers.
    """

    def __init__(self, host: str, token: str, *, timeout: float = HTTP_TIMEOUT_S):
        self.host = host.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(
            {
                TOKEN_HEADER: token,
                "Accept": "application/json",
                "User-Agent": "igor-runner-monitor",
            }
        )

    def url_for(self, endpoint: str) -> str:
        return f"{self.host}/{API_PREFIX}/{endpoint.lstrip('/')}"

    def _get(
        self,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = self.url_for(endpoint)
        start = time.monotonic()
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request to {endpoint} failed: {e}") from e
        logger.debug(
            "GET %s params=%s -> %d (%.2fs)",
            endpoint,
            params,
            response.status_code,
            time.monotonic() - start,
        )
        return response

    def _json(self, response: requests.Response, endpoint: str) -> Any:
        if not 200 <= response.status_code < 300:
            raise classify_http_error(response.status_code, endpoint, response.text)
        try:
            return response.json()
        except ValueError as e:
            raise DeserializeError(f"Invalid JSON from {endpoint}: {e}") from e

    def list_runners(self, filters: RunnerFilters, page: int, per_page: int) -> list[Runner]:
        """Fetch one page of ``runners/all``.

        Only the server-side filters are sent; tag and version filtering is
        done by the caller once every page is in.
        """
        endpoint = "runners/all"
        params: dict[str, Any] = {"per_page": per_page, "page": page}
        params.update(filters.query_params())
        data = self._json(self._get(endpoint, params=params), endpoint)
        if not isinstance(data, list):
            raise DeserializeError(f"Expected a list from {endpoint}, got {type(data).__name__}")
        return [Runner.from_api(item) for item in data]

    def get_runner_detail(self, runner_id: int) -> Runner:
        """Fetch ``runners/:id`` (carries tag_list and version)."""
        endpoint = f"runners/{runner_id}"
        data = self._json(self._get(endpoint), endpoint)
        return Runner.from_api(data)

    def list_managers(self, runner_id: int) -> list[RunnerManager]:
        """Fetch ``runners/:id/managers``; a 404 means the runner has none."""
        endpoint = f"runners/{runner_id}/managers"
        response = self._get(endpoint)
        if response.status_code == 404:
            return []
        data = self._json(response, endpoint)
        if not isinstance(data, list):
            raise DeserializeError(f"Expected a list from {endpoint}, got {type(data).__name__}")
        return [RunnerManager.from_api(item) for item in data]

    def get_current_user(self) -> User:
        """Fetch the account the token belongs to."""
        endpoint = "user"
        data = self._json(self._get(endpoint), endpoint)
        return User.from_api(data)

    def close(self) -> None:
        self.session.close()
