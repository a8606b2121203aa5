"""Tests for the admin gateway."""

# pylint: disable=missing-function-docstring,redefined-outer-name

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from keygate.core.config import Settings
from keygate.core.exceptions import ForbiddenError
from keygate.core.key_models import ResetOutcome, RevokeOutcome
from keygate.services import key_lifecycle
from keygate.services.admin_gateway import AdminGateway
from keygate.services.validation import ValidationService

COOLDOWN = timedelta(hours=12)


@pytest.fixture
def gateway(store, clock) -> AdminGateway:
    return AdminGateway(
        store,
        ttl=timedelta(days=3),
        usage_quota=None,
        cooldown=COOLDOWN,
        clock=clock,
    )


class TestAuthorization:
    """Unprivileged callers never reach the store."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda gw: gw.issue_key(is_privileged=False),
            lambda gw: gw.revoke_key("RBX-AAAAAAAA", is_privileged=False),
            lambda gw: gw.list_keys(is_privileged=False),
            lambda gw: gw.get_key("RBX-AAAAAAAA", is_privileged=False),
            lambda gw: gw.import_keys([], is_privileged=False),
        ],
    )
    def test_forbidden_without_privilege(self, call):
        store = MagicMock()
        gateway = AdminGateway(
            store, ttl=timedelta(days=1), usage_quota=1, cooldown=COOLDOWN
        )

        with pytest.raises(ForbiddenError) as excinfo:
            call(gateway)

        assert excinfo.value.code == "forbidden"
        assert store.method_calls == []


class TestIssue:
    """Tests for issuing keys."""

    def test_issue_uses_defaults(self, gateway, store, clock):
        record = gateway.issue_key(is_privileged=True)

        assert record.token.startswith("RBX-")
        assert record.expires_at == clock.now + timedelta(days=3)
        assert record.usage_remaining is None
        assert store.load() == {record.token: record}

    def test_issue_overrides(self, gateway, clock):
        record = gateway.issue_key(is_privileged=True, ttl=timedelta(hours=1), usage_quota=2)

        assert record.expires_at == clock.now + timedelta(hours=1)
        assert record.usage_remaining == 2

    def test_unlimited_overrides_quota(self, store, clock):
        gateway = AdminGateway(
            store, ttl=timedelta(days=1), usage_quota=1, cooldown=COOLDOWN, clock=clock
        )

        record = gateway.issue_key(is_privileged=True, usage_quota=5, unlimited=True)

        assert record.usage_remaining is None

    def test_issue_rejects_bad_quota(self, gateway):
        with pytest.raises(ValueError):
            gateway.issue_key(is_privileged=True, usage_quota=0)

    def test_issue_retries_on_collision(self, gateway, store, monkeypatch):
        existing = gateway.issue_key(is_privileged=True)
        tokens = iter([existing.token, "RBX-FRESH000"])
        monkeypatch.setattr(key_lifecycle, "generate_token", lambda prefix, length: next(tokens))

        record = gateway.issue_key(is_privileged=True)

        assert record.token == "RBX-FRESH000"
        assert len(store.load()) == 2

    def test_from_settings(self, store):
        settings = Settings(
            LOG_PSEUDONYM_SECRET="x",
            KEY_PREFIX="VIP-",
            KEY_SUFFIX_LENGTH=10,
            KEY_TTL_SECONDS=60,
            KEY_USAGE_QUOTA=3,
            RESET_COOLDOWN_SECONDS=30,
        )
        gateway = AdminGateway.from_settings(store, settings)

        record = gateway.issue_key(is_privileged=True)

        assert record.token.startswith("VIP-")
        assert len(record.token) == len("VIP-") + 10
        assert record.usage_remaining == 3
        assert record.expires_at - record.created_at == timedelta(seconds=60)
        assert gateway.cooldown == timedelta(seconds=30)


class TestRevokeAndList:
    """Tests for revoke, list, and inspect."""

    def test_revoke_then_not_found(self, gateway):
        record = gateway.issue_key(is_privileged=True)

        assert gateway.revoke_key(record.token, is_privileged=True) is RevokeOutcome.REVOKED
        assert gateway.revoke_key(record.token, is_privileged=True) is RevokeOutcome.NOT_FOUND
        assert gateway.get_key(record.token, is_privileged=True) is None

    def test_list_includes_expired_keys(self, gateway, clock):
        first = gateway.issue_key(is_privileged=True, ttl=timedelta(minutes=1))
        clock.advance(hours=1)
        second = gateway.issue_key(is_privileged=True)

        records = gateway.list_keys(is_privileged=True)

        assert [r.token for r in records] == [first.token, second.token]
        assert records[0].is_expired(clock.now)


class TestReset:
    """Tests for resetting bindings through the gateway."""

    @pytest.fixture
    def bound_token(self, gateway, store, clock) -> str:
        record = gateway.issue_key(is_privileged=True)
        ValidationService(store, clock=clock).check(record.token, "hw-1")
        return record.token

    def test_self_service_reset_twice_hits_cooldown(self, gateway, bound_token, clock):
        first = gateway.reset_key(bound_token, "alice", is_privileged=False)
        clock.advance(hours=1)
        second = gateway.reset_key(bound_token, "alice", is_privileged=False)

        assert first.outcome is ResetOutcome.RESET
        assert second.outcome is ResetOutcome.COOLDOWN_ACTIVE
        assert second.retry_after == timedelta(hours=11)

    def test_privileged_reset_never_cools_down(self, gateway, bound_token):
        outcomes = [
            gateway.reset_key(bound_token, "admin", is_privileged=True).outcome for _ in range(3)
        ]

        assert outcomes == [ResetOutcome.RESET] * 3

    def test_reset_allows_new_claim(self, gateway, store, bound_token, clock):
        gateway.reset_key(bound_token, "alice", is_privileged=False)

        outcome = ValidationService(store, clock=clock).check(bound_token, "hw-2")

        assert outcome.value == "valid"
        assert store.load()[bound_token].bound_identity == "hw-2"

    def test_reset_by_other_principal(self, gateway, bound_token, clock):
        gateway.reset_key(bound_token, "alice", is_privileged=False)
        clock.advance(days=1)

        transition = gateway.reset_key(bound_token, "mallory", is_privileged=False)

        assert transition.outcome is ResetOutcome.OWNERSHIP_MISMATCH

    def test_reset_unknown_token(self, gateway):
        transition = gateway.reset_key("RBX-UNKNOWN1", "alice", is_privileged=False)
        assert transition.outcome is ResetOutcome.NOT_FOUND

    def test_reset_requires_principal(self, gateway, bound_token):
        with pytest.raises(ValueError, match="principal"):
            gateway.reset_key(bound_token, " ", is_privileged=True)


def test_import_keys_skips_existing(gateway, store, clock):
    existing = gateway.issue_key(is_privileged=True)
    fresh = key_lifecycle.issue(timedelta(days=1), None, now=clock.now)

    imported, skipped = gateway.import_keys([existing, fresh], is_privileged=True)

    assert (imported, skipped) == (1, 1)
    assert set(store.load()) == {existing.token, fresh.token}
