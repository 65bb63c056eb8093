"""
Tests for password authentication and the authentication fallback chain.
"""

import pytest

from authgate.auth import (
    AuthenticationChain,
    BasicAuthConfig,
    MemoryAuthProvider,
    hash_password,
    verify_password,
)
from authgate.errors import (
    AuthGateError,
    BackendUnavailableError,
    ErrorCode,
    InvalidArgumentError,
)

from conftest import StubAuthProvider


class TestPasswords:
    """Test password hashing helpers"""

    def test_hash_is_hex_digest(self):
        digest = hash_password("secret")

        assert len(digest) == 64
        assert digest == hash_password("secret")
        assert digest != hash_password("Secret")

    def test_verify_password(self):
        digest = hash_password("secret")

        assert verify_password("secret", digest)
        assert verify_password("secret", digest.upper())
        assert not verify_password("wrong", digest)
        assert not verify_password("secret", "")

    def test_other_algorithms(self):
        digest = hash_password("secret", "sha512")

        assert len(digest) == 128
        assert verify_password("secret", digest, "sha512")


class TestMemoryAuthProvider:
    """Test the in-memory password table"""

    @pytest.mark.asyncio
    async def test_verify_from_plain_passwords(self):
        provider = MemoryAuthProvider(BasicAuthConfig.from_options({
            "passwords": {"alice": "wonderland"},
            "name": "local",
        }))

        assert provider.name == "local"
        assert await provider.verify("alice", "wonderland")
        assert not await provider.verify("alice", "looking-glass")
        assert not await provider.verify("bob", "wonderland")

    @pytest.mark.asyncio
    async def test_verify_from_stored_hashes(self):
        provider = MemoryAuthProvider(BasicAuthConfig(users={"bob": hash_password("builder")}))

        assert await provider.verify("bob", "builder")

    @pytest.mark.asyncio
    async def test_set_and_remove_user(self):
        provider = MemoryAuthProvider()

        provider.set_password("carol", "singer")
        assert provider.usernames == {"carol"}
        assert await provider.verify("carol", "singer")

        assert provider.remove_user("carol") is True
        assert provider.remove_user("carol") is False
        assert not await provider.verify("carol", "singer")


class TestAuthenticationChain:
    """Test ordered fallback across providers"""

    @pytest.mark.asyncio
    async def test_falls_through_rejection(self):
        first = StubAuthProvider("first", accept=False)
        second = StubAuthProvider("second", accept=True)
        chain = AuthenticationChain([first, second])

        assert await chain.authenticate("alice", "pw") is True
        assert first.calls == [("alice", "pw")]
        assert second.calls == [("alice", "pw")]

    @pytest.mark.asyncio
    async def test_stops_at_first_acceptance(self):
        first = StubAuthProvider("first", accept=True)
        second = StubAuthProvider("second", accept=True)
        chain = AuthenticationChain([first, second])

        assert await chain.authenticate("alice", "pw")
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_non_terminal_error_is_treated_as_rejection(self):
        first = StubAuthProvider("first", error=BackendUnavailableError("down"))
        second = StubAuthProvider("second", accept=False)
        chain = AuthenticationChain([first, second])

        assert await chain.authenticate("alice", "pw") is False
        assert second.calls == [("alice", "pw")]

    @pytest.mark.asyncio
    async def test_non_terminal_error_then_acceptance(self):
        first = StubAuthProvider("first", error=ConnectionError("refused"))
        second = StubAuthProvider("second", accept=True)
        chain = AuthenticationChain([first, second])

        assert await chain.authenticate("alice", "pw") is True

    @pytest.mark.asyncio
    async def test_single_provider_error_is_surfaced(self):
        error = BackendUnavailableError("down")
        chain = AuthenticationChain([StubAuthProvider("only", error=error)])

        with pytest.raises(BackendUnavailableError) as exc_info:
            await chain.authenticate("alice", "pw")

        assert exc_info.value is error
        assert exc_info.value.provider == "only"

    @pytest.mark.asyncio
    async def test_terminal_foreign_error_is_wrapped(self):
        chain = AuthenticationChain([
            StubAuthProvider("first", accept=False),
            StubAuthProvider("last", error=RuntimeError("boom")),
        ])

        with pytest.raises(AuthGateError) as exc_info:
            await chain.authenticate("alice", "pw")

        assert exc_info.value.code == ErrorCode.BACKEND_UNAVAILABLE
        assert exc_info.value.provider == "last"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_all_reject(self):
        chain = AuthenticationChain([
            StubAuthProvider("a"), StubAuthProvider("b"), StubAuthProvider("c"),
        ])

        assert await chain.authenticate("alice", "pw") is False

    @pytest.mark.asyncio
    async def test_empty_chain_rejects(self):
        assert await AuthenticationChain().authenticate("alice", "pw") is False

    @pytest.mark.asyncio
    async def test_empty_username_is_invalid(self):
        provider = StubAuthProvider("only", accept=True)
        chain = AuthenticationChain([provider])

        with pytest.raises(InvalidArgumentError):
            await chain.authenticate("", "pw")
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_missing_credential_is_passed_as_empty(self):
        provider = StubAuthProvider("only")
        chain = AuthenticationChain([provider])

        await chain.authenticate("alice", None)

        assert provider.calls == [("alice", "")]

    def test_provider_order_is_fixed(self):
        providers = [StubAuthProvider("a"), StubAuthProvider("b")]
        chain = AuthenticationChain(providers)
        providers.append(StubAuthProvider("c"))

        assert [p.name for p in chain.providers] == ["a", "b"]
        assert len(chain) == 2
