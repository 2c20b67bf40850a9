"""
Tests for handshake identity resolution.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.auth.identity import IdentityResolver, UserIdentity, display_name_from_address, extract_token
from storefront.auth.tokens import create_access_token
from storefront.auth.users import AccountDirectory
from storefront.exceptions import InvalidCredentialError, MissingCredentialError, ProfileLookupError
from storefront.models.user import UserRole

SECRET = "unit-test-secret-0123456789"


def make_token(subject: str = "user-1", role: str = "user") -> str:
    return create_access_token(subject, role, secret_key=SECRET, algorithm="HS256")


@pytest.fixture
def accounts():
    lookup = AsyncMock()
    lookup.get_contact_address = AsyncMock(return_value="ana.perez@example.com")
    return lookup


@pytest.fixture
def resolver(accounts):
    return IdentityResolver(accounts, secret_key=SECRET, algorithm="HS256")


class TestExtractToken:
    def test_prefers_auth_payload(self):
        assert extract_token("from-query", "Bearer from-header") == "from-query"

    def test_falls_back_to_bearer_header(self):
        assert extract_token(None, "Bearer abc.def.ghi") == "abc.def.ghi"

    def test_bearer_prefix_is_case_insensitive(self):
        assert extract_token("", "bearer abc") == "abc"

    def test_header_without_prefix_is_used_verbatim(self):
        assert extract_token(None, "abc") == "abc"

    @pytest.mark.parametrize("header", ["Bearer ", "Bearer", "  bearer   "])
    def test_empty_bearer_header_is_missing(self, header):
        assert extract_token(None, header) is None

    def test_nothing_supplied(self):
        assert extract_token(None, None) is None
        assert extract_token("   ", "Bearer ") is None


def test_display_name_is_local_part():
    assert display_name_from_address("ana.perez@example.com") == "ana.perez"
    assert display_name_from_address("a@b@c") == "a"


class TestIdentityResolver:
    @pytest.mark.asyncio
    async def test_resolves_identity_with_display_name(self, resolver, accounts):
        identity = await resolver.resolve(make_token("user-1", "admin"))

        assert identity == UserIdentity(id="user-1", role=UserRole.ADMIN, display_name="ana.perez")
        accounts.get_contact_address.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_unknown_role_maps_to_user(self, resolver):
        identity = await resolver.resolve(make_token(role="superuser"))
        assert identity.role is UserRole.USER

    @pytest.mark.asyncio
    async def test_profile_lookup_failure_is_not_fatal(self, resolver, accounts):
        accounts.get_contact_address.side_effect = ProfileLookupError("Account not found", user_id="user-1")

        identity = await resolver.resolve(make_token())

        assert identity.id == "user-1"
        assert identity.display_name is None

    @pytest.mark.asyncio
    async def test_unreachable_account_store_is_not_fatal(self):
        session_maker = MagicMock(side_effect=ConnectionRefusedError(111, "Connect call failed"))
        resolver = IdentityResolver(AccountDirectory(session_maker), secret_key=SECRET, algorithm="HS256")

        identity = await resolver.resolve(make_token())

        assert identity.id == "user-1"
        assert identity.display_name is None

    @pytest.mark.asyncio
    async def test_missing_token_fails_handshake(self, resolver, accounts):
        with pytest.raises(MissingCredentialError):
            await resolver.resolve(None)
        accounts.get_contact_address.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_token_fails_handshake(self, resolver, accounts):
        with pytest.raises(InvalidCredentialError):
            await resolver.resolve("tampered.token.value")
        accounts.get_contact_address.assert_not_awaited()
