"""Tests for the destination decision table."""

import pytest

from utils.redirection import CROSS_ORIGIN, SAME_ORIGIN, resolve_destination


def dest(account_type, **kwargs):
    return resolve_destination(
        account_type, user_domain="user.example", client_domain="client.example", **kwargs
    )


class TestDecisionTable:
    @pytest.mark.parametrize("account_type,is_new_user,expected", [
        ("user", True, "https://user.example/profile-completion"),
        ("user", False, "https://user.example/dashboard"),
        ("client", True, "https://client.example/profile"),
        ("client", False, "https://client.example/dashboard"),
    ])
    def test_account_type_rows(self, account_type, is_new_user, expected):
        target = dest(account_type, is_new_user=is_new_user)
        assert target.url == expected
        assert target.navigation == CROSS_ORIGIN
        assert target.is_cross_origin

    def test_google_auth_counts_as_new_user(self):
        assert dest("user", is_new_user=False, is_google_auth=True).url == "https://user.example/profile-completion"
        assert dest("client", is_google_auth=True).url == "https://client.example/profile"

    def test_account_type_beats_current_host(self):
        target = dest("client", current_host="user.example")
        assert target.url == "https://client.example/dashboard"


class TestHostFallback:
    def test_user_host(self):
        assert dest(None, current_host="user.example").url == "https://user.example/dashboard"
        assert dest("unknown", is_new_user=True, current_host="user.example").url == \
            "https://user.example/profile-completion"

    def test_client_host(self):
        assert dest(None, current_host="client.example").url == "https://client.example/dashboard"
        assert dest(None, is_new_user=True, current_host="client.example:443").url == \
            "https://client.example/profile"

    def test_last_resort_is_relative(self):
        target = dest(None, current_host="localhost")
        assert target.url == "/dashboard"
        assert target.navigation == SAME_ORIGIN
        assert not target.is_cross_origin

    def test_no_host_at_all(self):
        assert dest(None).to_dict() == {"url": "/dashboard", "navigation": SAME_ORIGIN}
