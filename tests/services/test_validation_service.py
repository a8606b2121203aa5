"""Tests for the validation service."""

# pylint: disable=missing-function-docstring,redefined-outer-name

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from keygate.core.key_models import RevokeOutcome, ValidationOutcome
from keygate.services.admin_gateway import AdminGateway
from keygate.services.validation import ValidationService


@pytest.fixture
def gateway(store, clock) -> AdminGateway:
    return AdminGateway(
        store,
        ttl=timedelta(days=3),
        usage_quota=1,
        cooldown=timedelta(hours=12),
        clock=clock,
    )


@pytest.fixture
def service(store, clock) -> ValidationService:
    return ValidationService(store, clock=clock)


class TestValidationServiceCheck:
    """Tests for single-caller validation behaviour."""

    def test_unknown_token_is_invalid(self, service):
        assert service.check("RBX-UNKNOWN1", "hw-1") is ValidationOutcome.INVALID

    def test_blank_arguments_raise(self, service):
        with pytest.raises(ValueError, match="token"):
            service.check("  ", "hw-1")
        with pytest.raises(ValueError, match="identity"):
            service.check("RBX-AAAAAAAA", "")

    def test_issue_validate_revoke_scenario(self, service, gateway, store):
        record = gateway.issue_key(is_privileged=True, ttl=timedelta(days=3), usage_quota=1)

        assert service.check(record.token, "hw-1") is ValidationOutcome.VALID
        assert store.load()[record.token].bound_identity == "hw-1"
        assert service.check(record.token, "hw-2") is ValidationOutcome.IDENTITY_MISMATCH
        assert gateway.revoke_key(record.token, is_privileged=True) is RevokeOutcome.REVOKED
        assert service.check(record.token, "hw-1") is ValidationOutcome.INVALID

    def test_mismatch_does_not_mutate(self, service, gateway, store):
        record = gateway.issue_key(is_privileged=True, unlimited=True)
        service.check(record.token, "hw-1")
        before = store.load()[record.token]

        assert service.check(record.token, "hw-2") is ValidationOutcome.IDENTITY_MISMATCH
        assert store.load()[record.token] == before

    def test_quota_is_counted_exactly(self, service, gateway):
        record = gateway.issue_key(is_privileged=True, usage_quota=4)

        outcomes = [service.check(record.token, "hw-1") for _ in range(5)]

        assert outcomes == [ValidationOutcome.VALID] * 4 + [ValidationOutcome.EXHAUSTED]

    def test_unlimited_key_five_times(self, service, gateway, store):
        record = gateway.issue_key(is_privileged=True, unlimited=True)

        for _ in range(5):
            assert service.check(record.token, "u1") is ValidationOutcome.VALID
            assert store.load()[record.token].usage_remaining is None

    def test_expired_key(self, service, gateway, store, clock):
        record = gateway.issue_key(is_privileged=True, usage_quota=2)
        service.check(record.token, "hw-1")
        before = store.load()[record.token]

        clock.advance(days=3, seconds=1)

        assert service.check(record.token, "hw-1") is ValidationOutcome.EXPIRED
        assert store.load()[record.token] == before


class TestValidationServiceConcurrency:
    """Concurrent validations must be applied one after another."""

    def test_one_use_key_yields_exactly_one_valid(self, service, gateway):
        record = gateway.issue_key(is_privileged=True, usage_quota=1)
        identities = [f"hw-{n}" for n in range(100)]

        with ThreadPoolExecutor(max_workers=32) as pool:
            outcomes = list(pool.map(lambda ident: service.check(record.token, ident), identities))

        counts = Counter(outcomes)
        assert counts[ValidationOutcome.VALID] == 1
        assert counts[ValidationOutcome.IDENTITY_MISMATCH] == 99

    def test_unbound_key_binds_exactly_once(self, service, gateway, store):
        record = gateway.issue_key(is_privileged=True, unlimited=True)
        identities = [f"acct-{n}" for n in range(50)]

        with ThreadPoolExecutor(max_workers=16) as pool:
            outcomes = list(pool.map(lambda ident: service.check(record.token, ident), identities))

        winner = store.load()[record.token].bound_identity
        assert Counter(outcomes)[ValidationOutcome.VALID] == 1
        assert outcomes[identities.index(winner)] is ValidationOutcome.VALID
