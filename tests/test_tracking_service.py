from __future__ import annotations

import pytest

from branchstore.services.tracking_service import split_showcase_id


@pytest.fixture()
def alice(services):
    services.profiles.create_profile("alice", "alice", "Alice")
    services.showcases.create_showcase("alice", {"title": "My App", "url": "https://a.dev", "status": "published"})
    return "alice"


def test_split_showcase_id():
    assert split_showcase_id("alice/my-app") == ("alice", "my-app")
    assert split_showcase_id("my-app") is None
    assert split_showcase_id("alice/../x") is None
    assert split_showcase_id(None) is None


def test_click_bumps_showcase_and_profile(services, alice):
    assert services.tracking.track_click("alice/my-app")
    assert services.tracking.track_click("alice/my-app")

    _, showcase = services.showcases.get_showcase(alice, "my-app")
    assert showcase.clicks_count == 2
    assert services.profiles.get_profile(alice).total_clicks == 2


def test_views(services, alice):
    assert services.tracking.increment_showcase_views("alice/my-app")
    assert services.tracking.increment_profile_views(alice)

    _, showcase = services.showcases.get_showcase(alice, "my-app")
    assert showcase.views_count == 1
    assert services.profiles.get_profile(alice).total_views == 1


def test_tracking_missing_targets_is_dropped(services, alice):
    assert services.tracking.track_click("alice/missing") is False
    assert services.tracking.increment_profile_views("ghost") is False
    assert services.tracking.increment_showcase_views("garbage") is False
    assert services.profiles.get_profile(alice).total_clicks == 0


def test_tracking_writes_with_service_token(github_services, fake_github):
    github_services.profiles.create_profile("alice", "alice", "Alice", token="user-token")
    github_services.showcases.create_showcase("alice", {"title": "My App", "url": "https://a.dev"}, "user-token")
    fake_github.calls.clear()

    assert github_services.tracking.track_click("alice/my-app")

    puts = [auth for method, endpoint, auth in fake_github.calls if method == "PUT"]
    assert puts == ["Bearer service-token", "Bearer service-token"]
    assert '"clicks_count": 1' in fake_github.file_text("user/alice", "showcases/my-app.json")


def test_tracking_failure_is_swallowed(github_services, fake_github):
    github_services.profiles.create_profile("alice", "alice", "Alice", token="t")
    fake_github.fail("PUT", "contents", 503)

    assert github_services.tracking.increment_profile_views("alice") is False
