"""
Authentication Tests
"""
import asyncio

import pytest

from conftest import OWNER_ID, make_token
from learnhub.core.auth import DEV_USER, get_current_user
from learnhub.core.errors import AuthError


def resolve(header):
    return asyncio.run(get_current_user(header))


class TestSupabaseTokens:
    """HS256 tokens signed with the project secret"""

    def test_valid_token(self, env):
        user = resolve(f"Bearer {make_token(OWNER_ID)}")
        assert user.user_id == OWNER_ID
        assert user.role == "authenticated"

    def test_scheme_is_case_insensitive(self, env):
        user = resolve(f"bearer {make_token(OWNER_ID)}")
        assert user.user_id == OWNER_ID

    def test_expired_token(self, env):
        with pytest.raises(AuthError):
            resolve(f"Bearer {make_token(OWNER_ID, expires_in=-60)}")

    def test_wrong_audience(self, env):
        with pytest.raises(AuthError):
            resolve(f"Bearer {make_token(OWNER_ID, audience='anon-service')}")

    def test_garbage_token(self, env):
        with pytest.raises(AuthError):
            resolve("Bearer not.a.jwt")

    @pytest.mark.parametrize("header", ["", "Bearer", "Bearer ", "Basic dXNlcjpwYXNz"])
    def test_missing_or_malformed_header(self, env, header):
        with pytest.raises(AuthError) as exc:
            resolve(header)
        assert exc.value.status_code == 401


class TestDevMode:
    """FF_USE_AUTH=false injects the dev user"""

    def test_dev_user_without_header(self, env, monkeypatch):
        from learnhub.core.flags import get_flags

        monkeypatch.setenv("FF_USE_AUTH", "false")
        get_flags.cache_clear()

        assert resolve("") is DEV_USER
