"""Location, route resolution and the hash router."""

from __future__ import annotations

import pytest

from goaltracker_ui.location import Location
from goaltracker_ui.router import HashRouter, Route, resolve_route


class TestResolveRoute:
    @pytest.mark.parametrize(
        "fragment,expected",
        [
            ("", Route.HOME),
            ("#", Route.HOME),
            ("#/", Route.HOME),
            ("#/timeline", Route.TIMELINE),
            ("#/profile", Route.PROFILE),
            ("#/goals/new", Route.NEW_GOAL),
            ("#/auth/callback", Route.AUTH_CALLBACK),
            ("#/auth/callback#access_token=abc", Route.AUTH_CALLBACK),
            ("#/does-not-exist", Route.HOME),
            ("#/profile/extra", Route.HOME),
        ],
    )
    def test_resolution(self, fragment, expected):
        assert resolve_route(fragment) is expected


class TestLocation:
    def test_assign_normalizes_and_notifies(self):
        location = Location()
        seen = []
        location.add_listener(seen.append)
        assert location.assign("/profile") is True
        assert location.hash == "#/profile"
        assert seen == ["#/profile"]

    def test_assign_same_value_is_silent(self):
        location = Location("#/")
        seen = []
        location.add_listener(seen.append)
        assert location.assign("#/") is False
        assert seen == []

    def test_listener_release(self):
        location = Location()
        seen = []
        sub = location.add_listener(seen.append)
        sub.unsubscribe()
        sub.unsubscribe()
        location.assign("#/timeline")
        assert seen == []
        assert location.listener_count == 0


class TestHashRouter:
    def test_initial_route_defaults_to_home(self):
        router = HashRouter(Location(""))
        assert router.current == "#/"
        assert router.route is Route.HOME

    def test_initial_route_from_location(self):
        router = HashRouter(Location("#/timeline"))
        assert router.route is Route.TIMELINE

    def test_updates_synchronously_on_every_change(self):
        location = Location("#/")
        with HashRouter(location) as router:
            for fragment in ["#/profile", "#/timeline", "#/goals/new", "#/nowhere"]:
                location.assign(fragment)
                assert router.current == location.hash
            location.assign("")
            assert router.current == "#/"
            assert router.route is Route.HOME

    def test_on_change_receives_each_route(self):
        location = Location("#/")
        router = HashRouter(location)
        router.start()
        routes = []
        router.on_change(routes.append)
        location.assign("#/profile")
        location.assign("#/timeline")
        assert routes == [Route.PROFILE, Route.TIMELINE]

    def test_stop_releases_listener(self):
        location = Location("#/")
        router = HashRouter(location)
        router.start()
        router.start()
        assert location.listener_count == 1
        router.stop()
        assert location.listener_count == 0
        location.assign("#/profile")
        assert router.route is Route.HOME

    def test_navigate(self):
        location = Location("#/")
        with HashRouter(location) as router:
            router.navigate(Route.ADMIN)
            assert location.hash == "#/admin"
            assert router.route is Route.ADMIN
