import threading

import pytest

from modsync.errors import NetworkFailure
from modsync.models import CatalogHit, FileRecord, VersionRecord
from modsync.services.cache_service import CacheStore


class FakeClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FakeCatalog:
    """In-memory catalog recording every call"""

    def __init__(self, source="modrinth", hits=None, versions=None, supports_version_listing=True,
                 fail_search=False, fail_versions=()):
        self.source = source
        self.hits = hits or {}
        self.versions = versions or {}
        self.supports_version_listing = supports_version_listing
        self.fail_search = fail_search
        self.fail_versions = set(fail_versions)
        self.search_calls = []
        self.version_calls = []

    def search(self, query, content_type):
        self.search_calls.append((query, content_type))
        if self.fail_search:
            raise NetworkFailure(self.source, "connection refused")
        return list(self.hits.get(query, []))

    def list_versions(self, project_id, game_versions=None, loaders=None):
        self.version_calls.append((project_id, game_versions, loaders))
        if project_id in self.fail_versions:
            raise NetworkFailure(self.source, "timeout")
        return list(self.versions.get(project_id, []))


def make_hit(slug, title=None, id=None, source="modrinth", author="someone"):
    return CatalogHit(id=id or f"id-{slug}", slug=slug, title=title or slug, author=author, source=source)


def make_version(number, game_versions=("1.20.1",), loaders=("fabric",), files=None, date=""):
    if files is None:
        files = [FileRecord(f"https://cdn.example/{number}.jar", f"{number}.jar", primary=True)]
    return VersionRecord(id=f"v-{number}", version_number=number, game_versions=list(game_versions),
                         loaders=list(loaders), date_published=date, files=files)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(path=None, clock=clock)


@pytest.fixture
def instance(tmp_path):
    return {"id": "survival", "path": str(tmp_path / "survival"), "mc_version": "1.20.1", "loader": "fabric"}


@pytest.fixture
def cancel():
    return threading.Event()
