"""
Typed synchronous clients for the GraphQL endpoints (subgraphs, pool
metadata API) and for the weight submission endpoint.

Transport retries live here and nowhere else: the weight engine treats any
failure that survives the retries as fatal for the epoch.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

import backoff
import httpx

from config import settings
from weights.errors import DataError

log = logging.getLogger("api.client")


class GraphQLClient:
    """
    Minimal wrapper around httpx.Client with automatic retries and
    cursor‑based pagination.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.BaseTransport | None = None,  # injectable for tests
    ):
        self.url = url
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.page_size = page_size or settings.PAGE_SIZE
        self._client = httpx.Client(timeout=self.timeout, transport=transport)

    @classmethod
    def for_deployment(cls, deployment_id: str, **kwargs: Any) -> "GraphQLClient":
        """Client for one subgraph deployment on the Graph gateway."""
        return cls(settings.graph_url + deployment_id, **kwargs)

    # ────────────────────────────────────────────────────────
    # Public endpoints
    # ────────────────────────────────────────────────────────
    def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run one query and return its ``data`` object.

        Transport failures (after retries) and GraphQL‑level errors are
        both reported as :class:`DataError`.
        """
        try:
            body = self._post(query, variables or {})
        except (httpx.HTTPError, ValueError) as err:
            raise DataError(f"GraphQL request to {self.url} failed: {err}") from err

        if not isinstance(body, dict):
            raise DataError(f"Expected JSON object from {self.url}", actual=type(body).__name__)
        if body.get("errors"):
            raise DataError(f"GraphQL errors from {self.url}: {body['errors']}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise DataError(f"Missing 'data' in response from {self.url}")
        return data

    def paginate(
        self,
        query: str,
        entity: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Yield every row of ``entity`` until the result set is exhausted.

        The query must accept ``$first`` and ``$cursor`` and filter on
        ``id_gt: $cursor`` ordered by ``id``; the next page starts after the
        last identifier seen.
        """
        cursor = ""
        page = 0
        while True:
            page_vars = dict(variables or {}, first=self.page_size, cursor=cursor)
            rows = self.query(query, page_vars).get(entity)
            if rows is None:
                raise DataError(f"Missing '{entity}' in response from {self.url}")

            yield from rows
            page += 1
            log.debug("Fetched page %d of %s (%d rows)", page, entity, len(rows))

            if len(rows) < self.page_size:
                return
            cursor = rows[-1]["id"]

    # ────────────────────────────────────────────────────────
    # Transport
    # ────────────────────────────────────────────────────────
    @backoff.on_exception(
        backoff.expo,
        httpx.HTTPError,
        max_tries=lambda: settings.HTTP_MAX_TRIES,
        jitter=None,
        factor=2,
    )
    def _post(self, query: str, variables: Dict[str, Any]) -> Any:
        response = self._client.post(
            self.url,
            json={"query": query, "variables": variables},
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    # ────────────────────────────────────────────────────────
    # Context manager helpers
    # ────────────────────────────────────────────────────────
    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GraphQLClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:  # noqa: D401
        self.close()


class WeightSubmitClient:
    """
    Posts weight lists keyed by pool / vault address.

    A non‑success status is logged as a warning together with the response
    body and the remaining payloads are still sent.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        success_status: int | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url or settings.SUBMIT_URL
        self.success_status = success_status or settings.SUBMIT_SUCCESS_STATUS
        self._client = httpx.Client(timeout=timeout or settings.HTTP_TIMEOUT, transport=transport)

    def submit(self, payloads: Dict[str, List[Dict[str, str]]]) -> int:
        """Send one POST per key; returns how many were accepted."""
        accepted = 0
        for address, records in payloads.items():
            try:
                response = self._client.post(self.url, json={address: records})
            except httpx.HTTPError as err:
                log.warning("[Submit] POST for %s failed: %s", address, err)
                continue

            if response.status_code == self.success_status:
                accepted += 1
                log.info("[Submit] %d records for %s accepted", len(records), address)
            else:
                log.warning(
                    "[Submit] %s rejected with status %d: %s",
                    address, response.status_code, response.text,
                )
        return accepted

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "WeightSubmitClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:  # noqa: D401
        self.close()
