# Path: release_installer/tests/test_catalog_client.py
"""Catalog fetching, caching and refresh policy."""

import asyncio
from datetime import datetime, timedelta

import aiohttp
import pytest
from tenacity import wait_none

from release_installer.engine.catalog_client import CatalogCache, CatalogClient
from release_installer.tests.fixtures import make_config, make_entry

CATALOG = [
    {'version': '2.0.0+BUILD2', 'download_url': 'https://downloads.example.com/App_2.0.xip'},
    {'version': '1.0.0', 'download_url': 'https://downloads.example.com/App_1.0.xip',
     'release_date': '2024-01-15'},
]


class FakeResponse:
    def __init__(self, status, body=None):
        self.status = status
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type='application/json'):
        return self.body


class FakeSession:
    """Stands in for aiohttp.ClientSession; each get() takes the next response."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.requests.append(url)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(CatalogClient._make_request_with_retry.retry, 'wait', wait_none())


def build_client(tmp_path, *responses, **values):
    client = CatalogClient(make_config(tmp_path, catalog_url='https://catalog.example.com/releases.json', **values))
    session = FakeSession(responses)

    async def get_session():
        return session

    client._get_session = get_session
    return client, session


def test_cache_round_trip(tmp_path):
    cache = CatalogCache(tmp_path / 'catalog.json')
    entries = [make_entry('2.0.0'), make_entry('1.0.0-beta.2')]

    cache.save(entries)

    assert cache.load() == entries
    assert cache.last_updated() is not None
    assert not (tmp_path / 'catalog.json.tmp').exists()


def test_missing_or_corrupt_cache_is_empty(tmp_path):
    cache = CatalogCache(tmp_path / 'catalog.json')
    assert cache.load() == []
    assert cache.last_updated() is None

    cache.path.write_text('[{"version": "not a version"}]')
    assert cache.load() == []


def test_needs_refresh_after_a_day():
    now = datetime(2024, 6, 1, 12, 0)

    assert CatalogClient.needs_refresh(None, now)
    assert not CatalogClient.needs_refresh(now - timedelta(hours=23), now)
    assert CatalogClient.needs_refresh(now - timedelta(hours=25), now)


def test_refresh_parses_and_caches(tmp_path):
    client, _ = build_client(tmp_path, FakeResponse(200, CATALOG))

    entries = asyncio.run(client.refresh())

    assert [str(e.version) for e in entries] == ['2.0.0+BUILD2', '1.0.0']
    assert entries[0].filename == 'App_2.0.xip'
    assert entries[1].release_date.isoformat() == '2024-01-15'
    assert client.cache.load() == entries


def test_refresh_falls_back_to_cache_when_unreachable(tmp_path):
    client, session = build_client(tmp_path, aiohttp.ClientConnectionError('connection refused'))
    cached = [make_entry('1.0.0')]
    client.cache.save(cached)

    assert asyncio.run(client.refresh()) == cached
    assert len(session.requests) == 3


def test_server_errors_are_retried(tmp_path):
    client, session = build_client(tmp_path, FakeResponse(503), FakeResponse(200, CATALOG))

    entries = asyncio.run(client.fetch())

    assert len(entries) == 2
    assert len(session.requests) == 2


def test_persistent_server_errors_fall_back_to_cache(tmp_path):
    client, session = build_client(tmp_path, FakeResponse(503))
    cached = [make_entry('1.0.0')]
    client.cache.save(cached)

    assert asyncio.run(client.refresh()) == cached
    assert len(session.requests) == 3


def test_client_error_status_is_not_retried(tmp_path):
    client, session = build_client(tmp_path, FakeResponse(404))

    with pytest.raises(ValueError):
        asyncio.run(client.fetch())

    assert len(session.requests) == 1


def test_refresh_without_url_uses_cache(tmp_path):
    client = CatalogClient(make_config(tmp_path, catalog_url=''))

    assert asyncio.run(client.refresh()) == []


@pytest.mark.parametrize('response', [{'releases': []}, [{'download_url': 'https://x/y.xip'}]])
def test_malformed_catalog_is_rejected(tmp_path, response):
    client, _ = build_client(tmp_path, FakeResponse(200, response))

    with pytest.raises(ValueError):
        asyncio.run(client.fetch())
