"""Terraform Cloud API v2 client.

Only the two read endpoints the plan phase needs are wrapped:

- ``GET /organizations/{organization}/workspaces``  (paginated)
- ``GET /workspaces/{workspace_id}/vars``

Pagination follows ``meta.pagination.next-page`` until it is null.  Every
request passes through a shared ``RateGovernor`` first, so the client never
exceeds ``rate_limit`` requests per second no matter how many pages or
workspaces there are.  Requests are issued sequentially.

Successful responses are kept in a response cache shared by everything
using the client, keyed on path and query parameters.  A repeated request is
answered from the cache without touching the network or the governor.

Any transport error, non-2xx response or undecodable payload raises
``FetchError``; without workspace data there is nothing to reconcile, so the
caller treats it as fatal.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import anyio
import httpx
from loguru import logger
from pydantic import ValidationError

from tfcleanup.audit.errors import FetchError
from tfcleanup.audit.models.workspace import Variable, Workspace, WorkspaceVariables
from tfcleanup.audit.settings import DEFAULT_BASE_URL, CleanupSettings

JSONAPI_CONTENT_TYPE = "application/vnd.api+json"


class RateGovernor:
    """Spaces request starts at least ``1 / per_second`` seconds apart.

    Not safe for concurrent acquirers; the client awaits requests one at a
    time.
    """

    def __init__(self, per_second: int) -> None:
        if per_second <= 0:
            msg = f"per_second must be positive, got {per_second}"
            raise ValueError(msg)
        self._interval = 1.0 / per_second
        self._next_slot: float | None = None

    async def acquire(self) -> None:
        now = anyio.current_time()
        if self._next_slot is not None and self._next_slot > now:
            await anyio.sleep(self._next_slot - now)
            now = self._next_slot
        self._next_slot = now + self._interval


class TerraformCloudClient:
    """Async client for the Terraform Cloud / Enterprise API.

    Use as an async context manager so the underlying ``httpx.AsyncClient``
    is closed::

        async with TerraformCloudClient(token, "my-org") as client:
            entries = await client.fetch_workspace_variables()
    """

    def __init__(
        self,
        token: str,
        organization: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        rate_limit: int = 30,
        page_size: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._organization = organization
        self._page_size = page_size
        self._governor = RateGovernor(rate_limit)
        self._cache: dict[tuple[str, tuple[tuple[str, Any], ...]], dict[str, Any]] = {}
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": JSONAPI_CONTENT_TYPE,
                "Accept": JSONAPI_CONTENT_TYPE,
            },
            timeout=30.0,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: CleanupSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> TerraformCloudClient:
        if settings.token is None or not settings.organization:
            msg = "Both token and organization must be configured to query Terraform Cloud"
            raise FetchError(msg)
        return cls(
            settings.token.get_secret_value(),
            settings.organization,
            base_url=settings.base_url,
            rate_limit=settings.rate_limit,
            page_size=settings.page_size,
            transport=transport,
        )

    async def __aenter__(self) -> TerraformCloudClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -- Endpoints -------------------------------------------------------------

    async def list_workspaces(self) -> list[Workspace]:
        path = f"organizations/{self._organization}/workspaces"
        return [_build(Workspace, resource) async for resource in self._paginate(path)]

    async def list_variables(self, workspace_id: str) -> list[Variable]:
        path = f"workspaces/{workspace_id}/vars"
        return [_build(Variable, resource) async for resource in self._paginate(path)]

    async def fetch_workspace_variables(self) -> list[WorkspaceVariables]:
        """All workspaces of the organization with their variables, in API order."""
        logger.info("Fetching workspaces for organization {}", self._organization)
        workspaces = await self.list_workspaces()
        entries: list[WorkspaceVariables] = []
        for workspace in workspaces:
            variables = await self.list_variables(workspace.id)
            logger.debug("Workspace {}: {} variables", workspace.name, len(variables))
            entries.append(WorkspaceVariables(workspace=workspace, variables=variables))
        return entries

    # -- Transport -------------------------------------------------------------

    async def _paginate(self, path: str) -> AsyncIterator[dict[str, Any]]:
        page = 1
        while True:
            payload = await self._get_json(path, {"page[number]": page, "page[size]": self._page_size})
            data = payload.get("data")
            if not isinstance(data, list):
                msg = f"GET {path}: response has no data list"
                raise FetchError(msg)
            for resource in data:
                yield resource

            next_page = ((payload.get("meta") or {}).get("pagination") or {}).get("next-page")
            if not next_page:
                return
            page = _next_page_number(path, page, next_page)

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        key = (path, tuple(sorted(params.items())))
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: GET {} {}", path, params)
            return cached

        await self._governor.acquire()
        try:
            response = await self._http.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            msg = f"GET {path} returned HTTP {exc.response.status_code}"
            raise FetchError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"GET {path} failed: {exc}"
            raise FetchError(msg) from exc
        except ValueError as exc:
            msg = f"GET {path} returned invalid JSON: {exc}"
            raise FetchError(msg) from exc

        if not isinstance(payload, dict):
            msg = f"GET {path} returned an unexpected payload"
            raise FetchError(msg)
        self._cache[key] = payload
        return payload


def _next_page_number(path: str, current: int, next_page: Any) -> int:
    """Validate ``meta.pagination.next-page``; it must be a page after ``current``."""
    try:
        number = int(next_page)
    except (TypeError, ValueError) as exc:
        msg = f"GET {path}: invalid next-page {next_page!r}"
        raise FetchError(msg) from exc
    if number <= current:
        msg = f"GET {path}: next-page {number} does not advance past page {current}"
        raise FetchError(msg)
    return number


def _build(model: type[Workspace] | type[Variable], resource: Any) -> Any:
    try:
        return model.from_resource(resource)
    except (KeyError, TypeError, AttributeError, ValidationError) as exc:
        msg = f"Unexpected {model.__name__.lower()} resource: {exc!r}"
        raise FetchError(msg) from exc
