"""
Unit tests for the Google sign-in decision table and its application.
"""
from types import SimpleNamespace

import pytest

from murshid.core.errors import AlreadySignedUp, AuthenticationFailed, DuplicateKey, NoAccountFound, UseLocalCredentials
from murshid.core.security import decode_access_token, verify_password
from murshid.models.user import User
from murshid.services import credential_store
from murshid.services.oauth_bridge import (
    GoogleIdentity,
    Outcome,
    decide,
    decode_state,
    encode_state,
    reconcile,
    split_name,
)


def account(provider: str, verified: bool):
    return SimpleNamespace(auth_provider=provider, is_email_verified=verified)


class TestDecide:
    """Each row of the decision table, with fixed inputs."""

    def test_local_verified_login_must_use_password(self):
        d = decide(account("local", True), "login")
        assert d.outcome is Outcome.REJECT
        assert d.error is UseLocalCredentials

    def test_google_signup_is_already_signed_up(self):
        for verified in (True, False):
            d = decide(account("google", verified), "signup")
            assert d.outcome is Outcome.REJECT
            assert d.error is AlreadySignedUp

    def test_local_unverified_signup_is_upgraded(self):
        d = decide(account("local", False), "signup")
        assert d.outcome is Outcome.UPGRADE
        assert d.error is None

    def test_google_login_updates(self):
        assert decide(account("google", True), "login").outcome is Outcome.UPDATE

    def test_local_verified_signup_must_use_password(self):
        d = decide(account("local", True), "signup")
        assert d.outcome is Outcome.REJECT
        assert d.error is UseLocalCredentials

    def test_unknown_signup_creates(self):
        assert decide(None, "signup").outcome is Outcome.CREATE

    def test_unknown_login_has_no_account(self):
        d = decide(None, "login")
        assert d.outcome is Outcome.REJECT
        assert d.error is NoAccountFound

    @pytest.mark.parametrize(
        "existing, action",
        [
            (account("local", False), "login"),
            (account("github", True), "login"),
            (None, "delete"),
        ],
    )
    def test_everything_else_fails_authentication(self, existing, action):
        d = decide(existing, action)
        assert d.outcome is Outcome.REJECT
        assert d.error is AuthenticationFailed


class TestState:
    def test_round_trip(self):
        assert decode_state(encode_state("signup")) == "signup"
        assert decode_state(encode_state("login")) == "login"

    def test_state_is_unique_per_request(self):
        assert encode_state("signup") != encode_state("signup")

    def test_unknown_action_is_encoded_as_login(self):
        assert decode_state(encode_state("admin")) == "login"

    @pytest.mark.parametrize("garbage", [None, "", "%%%", "bm90IGpzb24", "WzFd"])
    def test_garbled_state_defaults_to_login(self, garbage):
        assert decode_state(garbage) == "login"


def test_split_name():
    assert split_name("Ada King Lovelace") == ("Ada", "King Lovelace")
    assert split_name("Plato") == ("Plato", "")
    assert split_name("") == ("", "")
    assert split_name(None) == ("", "")


@pytest.mark.asyncio
class TestReconcile:
    identity = GoogleIdentity(external_id="g-123", email="Learner@Example.com", display_name="Ada Lovelace")

    async def test_signup_creates_google_account(self, db):
        user, token = await reconcile(self.identity, "signup")
        assert user.email == "learner@example.com"
        assert user.auth_provider == "google"
        assert user.is_email_verified is True
        assert user.google_id == "g-123"
        assert (user.first_name, user.last_name) == ("Ada", "Lovelace")
        assert user.role == "user"
        assert user.password_hash
        assert decode_access_token(token)["sub"] == str(user.id)

    async def test_login_without_account_is_rejected(self, db):
        with pytest.raises(NoAccountFound):
            await reconcile(self.identity, "login")
        assert await User.all().count() == 0

    async def test_signup_upgrades_unverified_local_account(self, db):
        local = await credential_store.create_local_user("learner@example.com", "A", "B", "secret123")

        user, token = await reconcile(self.identity, "signup")

        assert user.id == local.id
        fresh = await User.get(id=local.id)
        assert fresh.auth_provider == "google"
        assert fresh.is_email_verified is True
        assert fresh.google_id == "g-123"
        assert fresh.last_login is not None
        assert fresh.otp_code is None
        # The password chosen before verification no longer works
        assert verify_password("secret123", fresh.password_hash) is False
        assert decode_access_token(token)["sub"] == str(local.id)

    async def test_login_updates_google_account(self, db):
        created, _ = await reconcile(self.identity, "signup")
        first_login = created.last_login

        user, _ = await reconcile(self.identity, "login")

        assert user.id == created.id
        assert user.last_login >= first_login
        assert await User.all().count() == 1

    async def test_google_signup_twice_is_rejected(self, db):
        await reconcile(self.identity, "signup")
        with pytest.raises(AlreadySignedUp):
            await reconcile(self.identity, "signup")

    async def test_verified_local_account_keeps_password_sign_in(self, create_user):
        local, password = await create_user(email="learner@example.com")
        for action in ("login", "signup"):
            with pytest.raises(UseLocalCredentials):
                await reconcile(self.identity, action)
        fresh = await User.get(id=local.id)
        assert fresh.auth_provider == "local"
        assert fresh.google_id is None
        assert verify_password(password, fresh.password_hash)

    async def test_no_email_is_special_cased_for_role(self, db):
        identity = GoogleIdentity(external_id="g-9", email="admin@example.com", display_name="Admin")
        user, _ = await reconcile(identity, "signup")
        assert user.role == "user"

    async def test_upgrade_refuses_google_id_held_by_another_account(self, db):
        await reconcile(GoogleIdentity(external_id="g-123", email="first@example.com", display_name="First"), "signup")
        local = await credential_store.create_local_user("learner@example.com", "A", "B", "secret123")

        with pytest.raises(DuplicateKey) as exc_info:
            await reconcile(self.identity, "signup")

        assert exc_info.value.field == "googleId"
        fresh = await User.get(id=local.id)
        assert fresh.auth_provider == "local"
        assert fresh.google_id is None

    async def test_login_with_different_google_id_is_rejected(self, db):
        created, _ = await reconcile(self.identity, "signup")
        before = (await User.get(id=created.id)).last_login
        other = GoogleIdentity(external_id="g-999", email=self.identity.email, display_name="Ada Lovelace")

        with pytest.raises(AuthenticationFailed):
            await reconcile(other, "login")

        fresh = await User.get(id=created.id)
        assert fresh.google_id == "g-123"
        assert fresh.last_login == before
