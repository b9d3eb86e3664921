"""Shared fixtures — fake upstream playlists served through httpx.MockTransport."""

import asyncio
import json

import httpx
import pytest


class FakeUpstream:
    """Maps URLs to canned responses and records every request made."""

    def __init__(self):
        self.routes: dict[str, tuple[int, str, float]] = {}
        self.failing: set[str] = set()
        self.requests: list[str] = []

    def add(self, url: str, body: str, status: int = 200, delay: float = 0.0) -> None:
        self.routes[url] = (status, body, delay)

    def fail(self, url: str) -> None:
        self.failing.add(url)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.failing:
            raise httpx.ConnectError("connection refused", request=request)
        status, body, delay = self.routes.get(url, (404, "not found", 0.0))
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(status, text=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture()
def upstream():
    return FakeUpstream()


@pytest.fixture()
def data_dir(tmp_path):
    """Temporary data directory with background refresh switched off."""
    config = {"options": {"auto_refresh": False, "source_manager_password": "s3cret"}}
    (tmp_path / "config.json").write_text(json.dumps(config))
    return str(tmp_path)
