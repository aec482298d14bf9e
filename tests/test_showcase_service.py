from __future__ import annotations

import pytest

from branchstore.repositories.branches import showcase_path, user_branch
from branchstore.services.showcase_service import ShowcaseInputError


@pytest.fixture()
def alice(services):
    services.profiles.create_profile("alice", "alice", "Alice")
    return "alice"


def _registry_count(services, username):
    return services.registry.get_registry().find(username).showcase_count


def test_same_title_twice_gets_distinct_slugs(services, alice):
    first = services.showcases.create_showcase(alice, {"title": "My Cool App", "url": "https://a.dev"})
    second = services.showcases.create_showcase(alice, {"title": "My Cool App", "url": "https://b.dev"})

    assert first.slug == "my-cool-app"
    assert second.slug == "my-cool-app-2"
    assert second.id == "alice/my-cool-app-2"
    assert _registry_count(services, alice) == 2
    assert services.documents.read_json(showcase_path("my-cool-app"), user_branch(alice)).data["url"] == "https://a.dev"


def test_new_showcases_default_to_draft_and_append(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev"})
    created = services.showcases.create_showcase(alice, {"title": "Two", "url": "https://2.dev"})

    assert created.status == "draft"
    assert created.sort_order == 1
    assert created.col_span == 2
    assert created.clicks_count == created.views_count == 0


def test_title_and_url_are_required(services, alice):
    with pytest.raises(ShowcaseInputError):
        services.showcases.create_showcase(alice, {"title": "  ", "url": "https://a.dev"})
    with pytest.raises(ShowcaseInputError):
        services.showcases.create_showcase(alice, {"title": "App"})
    with pytest.raises(ShowcaseInputError):
        services.showcases.create_showcase(alice, {"title": "App", "url": "https://a.dev", "status": "live"})


def test_create_without_branch_fails(services):
    assert services.showcases.create_showcase("ghost", {"title": "App", "url": "https://a.dev"}) is None


def test_delete_updates_registry_count(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev"})
    services.showcases.create_showcase(alice, {"title": "Two", "url": "https://2.dev"})

    assert services.showcases.delete_showcase(alice, "alice/one")

    assert _registry_count(services, alice) == 1
    assert [s.slug for s in services.showcases.get_showcases(alice, include_all=True)] == ["two"]
    assert services.showcases.delete_showcase(alice, "one") is False


def test_registry_count_self_heals_on_next_write(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev"})
    services.registry.set_showcase_count(alice, 7)

    services.showcases.update_showcase(alice, "alice/one", {"description": "Fixed"})

    assert _registry_count(services, alice) == 1


def test_update_applies_patch_and_keeps_slug(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev"})

    updated = services.showcases.update_showcase(
        alice, "one", {"title": "Renamed", "status": "published", "slug": "hijack", "clicks_count": 50}
    )

    assert updated.slug == "one"
    assert updated.title == "Renamed"
    assert updated.published
    assert updated.clicks_count == 0


def test_update_rejects_bad_input(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev"})

    with pytest.raises(ShowcaseInputError):
        services.showcases.update_showcase(alice, "one", {"col_span": 3})
    with pytest.raises(ShowcaseInputError):
        services.showcases.update_showcase(alice, "one", {"title": ""})
    assert services.showcases.update_showcase(alice, "missing", {"title": "x"}) is None


def test_public_reads_only_see_published_in_order(services, alice):
    services.showcases.create_showcase(alice, {"title": "Late", "url": "https://l.dev", "sort_order": 5, "status": "published"})
    services.showcases.create_showcase(alice, {"title": "Early", "url": "https://e.dev", "sort_order": 1, "status": "published"})
    services.showcases.create_showcase(alice, {"title": "Hidden", "url": "https://h.dev"})

    public = services.showcases.get_showcases(alice)
    everything = services.showcases.get_showcases(alice, include_all=True)

    assert [s.slug for s in public] == ["early", "late"]
    assert {s.slug for s in everything} == {"early", "late", "hidden"}
    assert services.showcases.get_showcase(alice, "hidden") is None
    profile, showcase = services.showcases.get_showcase(alice, "early")
    assert profile.username == alice
    assert showcase.title == "Early"


def test_marketplace_page(services, alice):
    services.showcases.create_showcase(alice, {"title": "Shown", "url": "https://s.dev", "status": "published"})
    services.showcases.create_showcase(alice, {"title": "Draft", "url": "https://d.dev"})

    page = services.showcases.get_marketplace(alice).to_dict()

    assert page["profile"]["username"] == alice
    assert [s["id"] for s in page["showcases"]] == ["alice/shown"]
    assert services.showcases.get_marketplace("nobody") is None


def test_lost_slug_race_picks_the_next_slug(services, alice):
    store = services.store
    original = store.list_files
    calls = []

    def stale_listing(dir_path, branch, token=None, max_age=None):
        calls.append(dir_path)
        if len(calls) == 1:
            # Another request wrote the same slug after this listing was taken.
            store.write_file(showcase_path("my-app"), branch, "{}")
            return []
        return original(dir_path, branch, token, max_age)

    store.list_files = stale_listing

    created = services.showcases.create_showcase(alice, {"title": "My App", "url": "https://a.dev"})

    assert created.slug == "my-app-2"
    assert services.documents.read_json(showcase_path("my-app"), user_branch(alice)).data == {}


def test_showcases_over_github(github_services, fake_github):
    github_services.profiles.create_profile("alice", "alice", "Alice", token="t")
    github_services.showcases.create_showcase("alice", {"title": "My Cool App", "url": "https://a.dev"}, "t")
    github_services.showcases.create_showcase("alice", {"title": "My Cool App", "url": "https://b.dev"}, "t")

    assert fake_github.file_text("user/alice", "showcases/my-cool-app-2.json") is not None
    assert github_services.showcases.delete_showcase("alice", "alice/my-cool-app", "t")
    assert github_services.registry.get_registry().find("alice").showcase_count == 1


@pytest.mark.parametrize(
    "data",
    [
        {"title": 123, "url": "https://a.dev"},
        {"title": "App", "url": ["https://a.dev"]},
        {"title": "App", "url": "https://a.dev", "tags": "abc"},
        {"title": "App", "url": "https://a.dev", "ai_tools": [1, 2]},
        {"title": "App", "url": "https://a.dev", "col_span": True},
        {"title": "App", "url": "https://a.dev", "sort_order": False},
    ],
)
def test_create_rejects_wrong_types(services, alice, data):
    with pytest.raises(ShowcaseInputError):
        services.showcases.create_showcase(alice, data)

    assert services.showcases.get_showcases(alice, include_all=True) == []


def test_update_rejects_wrong_types(services, alice):
    services.showcases.create_showcase(alice, {"title": "One", "url": "https://1.dev", "tags": ["cli"]})

    with pytest.raises(ShowcaseInputError):
        services.showcases.update_showcase(alice, "one", {"tags": "abc"})

    assert services.showcases.get_showcases(alice, include_all=True)[0].tags == ["cli"]
