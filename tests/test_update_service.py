from modsync.models import FileRecord, InstalledContentRecord, ProjectIdentity
from modsync.services.cache_service import DEFAULT_UPDATE_TTL_MS
from modsync.services.update_service import UpdateChecker, version_filters

from tests.conftest import FakeCatalog, make_version

SCOPE = "survival"


def identified(file_name, project_id="AANobbMI", source="modrinth", content_type="mod"):
    identity = ProjectIdentity(project_id=project_id, slug=project_id.lower(), title=project_id,
                               author="someone", source=source, project_type=content_type, match_score=100)
    return InstalledContentRecord(file_name, content_type, identity=identity)


class RecordingInstaller:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.installed = []
        self.removed = []

    def install(self, instance, content_type, download_url, file_name):
        if file_name in self.fail_on:
            raise IOError(f"disk full while writing {file_name}")
        self.installed.append((content_type, download_url, file_name))

    def remove(self, instance, content_type, file_name):
        self.removed.append((content_type, file_name))


def test_version_filters(instance):
    assert version_filters(instance, "mod") == (["1.20.1"], ["fabric"])
    assert version_filters(instance, "resourcepack") == (["1.20.1"], None)
    assert version_filters(dict(instance, loader="Vanilla"), "mod") == (["1.20.1"], None)
    assert version_filters(dict(instance, loader="liteloader"), "mod") == (["1.20.1"], None)


def test_detects_update(cache, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("0.5.8"), make_version("0.5.3")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})

    item = checker.check_item(SCOPE, instance, identified("sodium-0.5.3.jar"))

    assert item.update_available is True
    assert item.update_file_name == "0.5.8.jar"
    assert item.update_download_url == "https://cdn.example/0.5.8.jar"
    assert item.latest_version == "0.5.8"
    assert item.state == "UPDATE_AVAILABLE"
    assert catalog.version_calls == [("AANobbMI", ["1.20.1"], ["fabric"])]
    assert cache.get_update(SCOPE, "mod", "sodium-0.5.3.jar")["update_available"] is True


def test_same_file_name_is_up_to_date(cache, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("0.5.8")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})

    item = checker.check_item(SCOPE, instance, identified("0.5.8.JAR"))

    assert item.update_available is False
    assert item.update_file_name is None
    assert item.state == "UP_TO_DATE"


def test_primary_or_first_file_is_compared(cache, instance):
    files = [FileRecord("https://cdn.example/sources.jar", "sodium-sources.jar"),
             FileRecord("https://cdn.example/sodium.jar", "sodium-0.5.8.jar", primary=True)]
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("0.5.8", files=files)]})
    item = UpdateChecker(cache, {"modrinth": catalog}).check_item(SCOPE, instance, identified("sodium-0.5.8.jar"))
    assert item.update_available is False


def test_cached_verdict_skips_network(cache, clock, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("0.5.8")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})
    checker.check_item(SCOPE, instance, identified("sodium-0.5.3.jar"))

    clock.advance(DEFAULT_UPDATE_TTL_MS - 1)
    item = checker.check_item(SCOPE, instance, identified("sodium-0.5.3.jar"))
    assert item.update_available is True
    assert len(catalog.version_calls) == 1

    clock.advance(2)
    checker.check_item(SCOPE, instance, identified("sodium-0.5.3.jar"))
    assert len(catalog.version_calls) == 2


def test_curseforge_is_manual_only(cache, instance):
    curseforge = FakeCatalog(source="curseforge", supports_version_listing=False)
    checker = UpdateChecker(cache, {"curseforge": curseforge})

    item = checker.check_item(SCOPE, instance, identified("jei-1.20.1.jar", project_id="238222", source="curseforge"))

    assert item.update_available is False
    assert curseforge.version_calls == []
    cached = cache.get_update(SCOPE, "mod", "jei-1.20.1.jar")
    assert cached["update_available"] is False
    assert cached["update_checked_at"] is not None


def test_unidentified_items_are_ignored(cache, instance):
    catalog = FakeCatalog()
    item = UpdateChecker(cache, {"modrinth": catalog}).check_item(SCOPE, instance, InstalledContentRecord("x.jar", "mod"))
    assert item.state == "UNIDENTIFIED"
    assert catalog.version_calls == []


def test_empty_listing_writes_nothing(cache, instance):
    catalog = FakeCatalog(versions={})
    item = UpdateChecker(cache, {"modrinth": catalog}).check_item(SCOPE, instance, identified("sodium-0.5.3.jar"))
    assert item.update_available is False
    assert cache.get_update(SCOPE, "mod", "sodium-0.5.3.jar") is None


def test_check_all_isolates_failures(cache, clock, instance, cancel):
    catalog = FakeCatalog(versions={"good": [make_version("2.0")], "bad": [make_version("9.9")]},
                          fail_versions={"bad"})
    checker = UpdateChecker(cache, {"modrinth": catalog})
    # previous verdict for the failing item must survive
    cache.set_update(SCOPE, "mod", "bad-1.0.jar", update_available=True, update_file_name="bad-1.5.jar")
    clock.advance(DEFAULT_UPDATE_TTL_MS + 1)

    items = [identified("bad-1.0.jar", project_id="bad"), identified("good-1.0.jar", project_id="good")]
    checker.check_all(SCOPE, instance, items)

    assert items[1].update_available is True
    assert items[0].update_available is False
    assert cache.get_raw(SCOPE, "mod", "bad-1.0.jar")["update_file_name"] == "bad-1.5.jar"

    cancel.set()
    catalog.version_calls.clear()
    clock.advance(DEFAULT_UPDATE_TTL_MS + 1)
    checker.check_all(SCOPE, instance, items, cancel=cancel)
    assert catalog.version_calls == []


def test_update_all_is_sequential_and_reports_failures(cache, instance):
    catalog = FakeCatalog(versions={
        "a": [make_version("a-2.0")],
        "b": [make_version("b-2.0")],
        "c": [make_version("c-2.0")],
    })
    checker = UpdateChecker(cache, {"modrinth": catalog})
    items = [identified("a-1.0.jar", "a"), identified("b-1.0.jar", "b"), identified("c-1.0.jar", "c"),
             identified("d-1.0.jar", "d")]
    checker.check_all(SCOPE, instance, items)
    installer = RecordingInstaller(fail_on={"b-2.0.jar"})

    report = checker.update_all(SCOPE, instance, items, installer)

    assert [u["to"] for u in report["updated"]] == ["a-2.0.jar", "c-2.0.jar"]
    assert report["failed"] == [{"file_name": "b-1.0.jar", "error": "disk full while writing b-2.0.jar"}]
    assert [f for _, _, f in installer.installed] == ["a-2.0.jar", "c-2.0.jar"]
    assert installer.removed == [("mod", "a-1.0.jar"), ("mod", "c-1.0.jar")]
    # replaced files start over as unidentified
    assert cache.get_raw(SCOPE, "mod", "a-1.0.jar") is None
    assert cache.get_raw(SCOPE, "mod", "b-1.0.jar") is not None


def test_apply_update_fetches_target_when_not_cached(cache, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("0.5.8")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})
    item = identified("sodium-0.5.3.jar")
    item.update_available = True
    installer = RecordingInstaller()

    assert checker.apply_update(SCOPE, instance, item, installer) == "0.5.8.jar"
    assert installer.installed == [("mod", "https://cdn.example/0.5.8.jar", "0.5.8.jar")]


def test_update_all_without_compatible_target(cache, instance):
    checker = UpdateChecker(cache, {"modrinth": FakeCatalog()})
    item = identified("sodium-0.5.3.jar")
    item.update_available = True
    report = checker.update_all(SCOPE, instance, [item], RecordingInstaller())
    assert report["updated"] == []
    assert "No compatible update" in report["failed"][0]["error"]


def test_disabled_file_is_compared_without_suffix(cache, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("sodium-0.5.8")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})

    item = checker.check_item(SCOPE, instance, identified("sodium-0.5.8.jar.disabled"))

    assert item.update_available is False
    assert item.state == "UP_TO_DATE"


def test_disabled_item_is_updated_disabled(cache, instance):
    catalog = FakeCatalog(versions={"AANobbMI": [make_version("sodium-0.5.8")]})
    checker = UpdateChecker(cache, {"modrinth": catalog})
    items = checker.check_all(SCOPE, instance, [identified("sodium-0.5.3.jar.disabled")])
    installer = RecordingInstaller()

    report = checker.update_all(SCOPE, instance, items, installer)

    assert report["updated"] == [{"from": "sodium-0.5.3.jar.disabled", "to": "sodium-0.5.8.jar.disabled"}]
    assert installer.installed == [("mod", "https://cdn.example/sodium-0.5.8.jar", "sodium-0.5.8.jar.disabled")]
    assert installer.removed == [("mod", "sodium-0.5.3.jar.disabled")]
