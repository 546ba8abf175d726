"""Mock Bitbucket Cloud API response fixtures.

Payloads follow the Bitbucket Cloud 2.0 REST API: every list endpoint
returns ``{"values": [...], "next": "<absolute url>"}``.

See: https://developer.atlassian.com/cloud/bitbucket/rest/intro/#pagination
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from tests.conftest import API_BASE

# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------
BITBUCKET_USER_RESPONSE = {
    "type": "user",
    "uuid": "{5c1b4a8e-0000-4000-8000-000000000001}",
    "display_name": "Jane Dev",
    "nickname": "jdev",
    "links": {"avatar": {"href": "https://avatar.example/jdev.png"}},
}

BITBUCKET_APP_USER_RESPONSE = {
    "type": "app_user",
    "display_name": "Pipelines",
}


def iso(value: datetime) -> str:
    """Format like the API does (``2024-01-15T10:00:00+00:00``)."""
    return value.isoformat()


# -----------------------------------------------------------------------------
# Builders
# -----------------------------------------------------------------------------
def commit_json(
    hash: str,
    date: datetime,
    *,
    message: str = "Fix widget rendering\n",
    parents: int = 1,
    user: dict[str, Any] | None = BITBUCKET_USER_RESPONSE,
) -> dict[str, Any]:
    author: dict[str, Any] = {"type": "author", "raw": "Jane Dev <jane@example.com>"}
    if user is not None:
        author["user"] = user
    return {
        "type": "commit",
        "hash": hash,
        "date": iso(date),
        "message": message,
        "author": author,
        "parents": [{"hash": f"{i:040x}", "type": "commit"} for i in range(parents)],
    }


def pull_request_json(
    pr_id: int,
    *,
    created_on: datetime,
    updated_on: datetime,
    state: str = "OPEN",
    title: str = "Add widget caching",
    merge_commit: dict[str, Any] | None = None,
    closed_on: datetime | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "pullrequest",
        "id": pr_id,
        "title": title,
        "state": state,
        "author": BITBUCKET_USER_RESPONSE,
        "created_on": iso(created_on),
        "updated_on": iso(updated_on),
        "merge_commit": merge_commit,
    }
    if closed_on is not None:
        payload["closed_on"] = iso(closed_on)
    return payload


def repository_json(slug: str, *, workspace: str = "acme", uuid: str | None = None) -> dict[str, Any]:
    return {
        "type": "repository",
        "uuid": uuid or f"{{repo-{slug}}}",
        "name": slug.replace("-", " ").title(),
        "slug": slug,
        "full_name": f"{workspace}/{slug}",
        "workspace": {"slug": workspace, "type": "workspace"},
        "created_on": "2020-06-01T08:00:00.000000+00:00",
    }


def membership_json(user: dict[str, Any]) -> dict[str, Any]:
    return {"type": "workspace_membership", "user": user}


def page(values: list[dict[str, Any]], next_url: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"values": values, "pagelen": len(values)}
    if next_url is not None:
        payload["next"] = next_url
    return payload


def api_url(path: str) -> str:
    """Absolute URL of a resource path, as found in ``next`` cursors."""
    return API_BASE + path.lstrip("/")


# -----------------------------------------------------------------------------
# Scripted API
# -----------------------------------------------------------------------------
class ScriptedApi:
    """``httpx.MockTransport`` handler serving listings by resource path.

    ``add(path, *pages)`` registers successive pages of one listing; each
    page links to the next through a ``page=N`` cursor. An
    ``httpx.Response`` in place of a page is returned unchanged. Unknown
    paths answer 404.

    Usage:
        api = ScriptedApi().add("repositories/acme/widgets/commits", [c1, c2], [c3])
        client = make_client(api)
    """

    def __init__(self, on_request: Callable[[httpx.Request], None] | None = None) -> None:
        self._routes: dict[str, list[Any]] = {}
        self._prefix = httpx.URL(API_BASE).path
        self.requests: list[httpx.Request] = []
        self.on_request = on_request

    def add(self, path: str, *pages: list[dict[str, Any]] | httpx.Response) -> "ScriptedApi":
        self._routes[path] = list(pages)
        return self

    def requested(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if self._relative(r) == path]

    def _relative(self, request: httpx.Request) -> str:
        return request.url.path.removeprefix(self._prefix)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)

        path = self._relative(request)
        pages = self._routes.get(path)
        if pages is None:
            return httpx.Response(404, json={"type": "error", "error": {"message": "Not found"}})

        index = int(request.url.params.get("page", "1")) - 1
        entry = pages[index]
        if isinstance(entry, httpx.Response):
            return entry
        next_url = api_url(f"{path}?page={index + 2}") if index + 1 < len(pages) else None
        return httpx.Response(200, json=page(entry, next_url))
