import pytest

from modsync.errors import NetworkFailure
from modsync.services.cache_service import DEFAULT_IDENTITY_TTL_MS
from modsync.services.identity_service import IdentityService, query_variants

from tests.conftest import FakeCatalog, make_hit

SODIUM_FILE = "sodium-fabric-mc1.20.1-0.5.3.jar"


def test_query_variants():
    assert query_variants("journey-map") == ["journey-map", "journey map", "journey+map"]
    assert query_variants("sodium") == ["sodium"]


def test_sodium_end_to_end(cache):
    hit = make_hit("sodium", "Sodium", id="AANobbMI", author="jellysquid3")
    catalog = FakeCatalog(hits={"sodium": [hit]})
    service = IdentityService(cache, {"modrinth": catalog})

    identity = service.identify("survival", "mod", SODIUM_FILE)

    assert identity.project_id == "AANobbMI"
    assert identity.match_score >= 90
    assert identity.source == "modrinth"
    stored = cache.get_identity("survival", "mod", SODIUM_FILE)
    assert stored.project_id == "AANobbMI"
    assert stored.author == "jellysquid3"


def test_searches_first_two_queries_with_variants(cache):
    catalog = FakeCatalog()
    service = IdentityService(cache, {"modrinth": catalog})

    service.identify("survival", "mod", "Xaeros_Minimap_23.8.3_Fabric_1.20.jar")

    terms = [q for q, _ in catalog.search_calls]
    assert terms == [
        "xaeros-minimap-23-8-3-fabric-1-20",
        "xaeros minimap 23 8 3 fabric 1 20",
        "xaeros+minimap+23+8+3+fabric+1+20",
        "xaeros-minimap",
        "xaeros minimap",
        "xaeros+minimap",
    ]
    assert all(t == "mod" for _, t in catalog.search_calls)


def test_cached_identity_skips_network(cache):
    catalog = FakeCatalog(hits={"sodium": [make_hit("sodium", id="AANobbMI")]})
    service = IdentityService(cache, {"modrinth": catalog})
    service.identify("survival", "mod", SODIUM_FILE)
    calls = len(catalog.search_calls)

    service.identify("survival", "mod", SODIUM_FILE)
    assert len(catalog.search_calls) == calls


def test_no_confident_match_leaves_item_unidentified(cache):
    catalog = FakeCatalog(hits={"sodium": [make_hit("rubidium-sodium", "Rubidium")]})
    service = IdentityService(cache, {"modrinth": catalog})
    assert service.identify("survival", "mod", SODIUM_FILE) is None
    assert cache.get("survival", "mod", SODIUM_FILE) is None


def test_failed_recheck_never_downgrades(cache):
    catalog = FakeCatalog(hits={"sodium": [make_hit("sodium", id="AANobbMI")]})
    service = IdentityService(cache, {"modrinth": catalog})
    service.identify("survival", "mod", SODIUM_FILE)

    catalog.hits = {}
    identity = service.identify("survival", "mod", SODIUM_FILE, force=True)
    assert identity.project_id == "AANobbMI"

    catalog.fail_search = True
    with pytest.raises(NetworkFailure):
        service.identify("survival", "mod", SODIUM_FILE, force=True)
    assert cache.get_identity("survival", "mod", SODIUM_FILE).project_id == "AANobbMI"


def test_only_higher_confidence_replaces(cache):
    catalog = FakeCatalog(hits={"sodium": [make_hit("sodium-mod", "Sodium", id="first")]})
    service = IdentityService(cache, {"modrinth": catalog})
    # title match: 95
    first = service.identify("survival", "mod", "sodium-0.5.3.jar")
    assert first.project_id == "first"
    assert first.match_score == 95

    catalog.hits = {"sodium": [make_hit("another", "Sodium", id="second")]}
    assert service.identify("survival", "mod", "sodium-0.5.3.jar", force=True).project_id == "first"

    catalog.hits = {"sodium": [make_hit("sodium", id="AANobbMI")]}
    assert service.identify("survival", "mod", "sodium-0.5.3.jar", force=True).project_id == "AANobbMI"


def test_stale_identity_is_resolved_again(cache, clock):
    catalog = FakeCatalog(hits={"sodium": [make_hit("sodium", id="AANobbMI")]})
    service = IdentityService(cache, {"modrinth": catalog})
    service.identify("survival", "mod", SODIUM_FILE)
    clock.advance(DEFAULT_IDENTITY_TTL_MS + 1)
    calls = len(catalog.search_calls)

    assert service.identify("survival", "mod", SODIUM_FILE).project_id == "AANobbMI"
    assert len(catalog.search_calls) > calls


def test_one_failing_catalog_is_tolerated(cache):
    broken = FakeCatalog(source="curseforge", fail_search=True)
    working = FakeCatalog(hits={"sodium": [make_hit("sodium", id="AANobbMI")]})
    service = IdentityService(cache, {"curseforge": broken, "modrinth": working})
    assert service.identify("survival", "mod", SODIUM_FILE).project_id == "AANobbMI"


def test_unconfigured_catalog_is_skipped(cache):
    unavailable = FakeCatalog(source="curseforge", fail_search=True)
    unavailable.available = False
    working = FakeCatalog(hits={"sodium": [make_hit("sodium", id="AANobbMI")]})
    service = IdentityService(cache, {"curseforge": unavailable, "modrinth": working})
    service.identify("survival", "mod", SODIUM_FILE)
    assert unavailable.search_calls == []


def test_hits_are_deduplicated(cache):
    hit = make_hit("sodium", id="AANobbMI")
    catalog = FakeCatalog(hits={"sodium": [hit], "sodium-fabric-mc1-20-1-0-5-3": [hit, make_hit("", title="")]})
    service = IdentityService(cache, {"modrinth": catalog})
    hits = service.search_candidates(["sodium-fabric-mc1-20-1-0-5-3", "sodium"], "mod")
    assert [h.id for h in hits] == ["AANobbMI", "id-"]


def test_enrich_isolates_failures_and_honours_cancel(cache, cancel):
    class FlakyCatalog(FakeCatalog):
        def search(self, query, content_type):
            if query.startswith("broken"):
                raise NetworkFailure("modrinth", "503")
            return super().search(query, content_type)

    catalog = FlakyCatalog(hits={
        "sodium": [make_hit("sodium", id="AANobbMI")],
        "lithium": [make_hit("lithium", id="gvQqBUqZ")],
    })
    service = IdentityService(cache, {"modrinth": catalog})

    result = service.enrich("survival", "mod", ["broken-mod-1.0.jar", "sodium-0.5.3.jar", "lithium-0.11.jar"])
    assert set(result) == {"sodium-0.5.3.jar", "lithium-0.11.jar"}

    cancel.set()
    assert service.enrich("survival", "mod", ["other-1.0.jar"], cancel=cancel) == {}


def test_new_project_drops_previous_update_verdict(cache):
    catalog = FakeCatalog(hits={"sodium": [make_hit("sodium-mod", "Sodium", id="first")]})
    service = IdentityService(cache, {"modrinth": catalog})
    service.identify("survival", "mod", "sodium-0.5.3.jar")
    cache.set_update("survival", "mod", "sodium-0.5.3.jar", update_available=True, update_file_name="first-2.0.jar")

    # same project keeps its verdict
    service.identify("survival", "mod", "sodium-0.5.3.jar", force=True)
    assert cache.get_update("survival", "mod", "sodium-0.5.3.jar")["update_available"] is True

    catalog.hits = {"sodium": [make_hit("sodium", id="AANobbMI")]}
    assert service.identify("survival", "mod", "sodium-0.5.3.jar", force=True).project_id == "AANobbMI"
    assert cache.get_update("survival", "mod", "sodium-0.5.3.jar") is None
    assert cache.get_raw("survival", "mod", "sodium-0.5.3.jar").get("update_file_name") is None
