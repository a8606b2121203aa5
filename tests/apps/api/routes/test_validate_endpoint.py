"""Tests for the /validate endpoint."""

# pylint: disable=missing-function-docstring,redefined-outer-name,unused-argument

import json
from http import HTTPStatus

import pytest

from keygate.adapters.key_store import AtomicJSONStorage


@pytest.fixture
def one_use_token(services) -> str:
    return services.admin.issue_key(is_privileged=True, usage_quota=1).token


class TestValidateEndpoint:
    """Tests for GET /validate."""

    def test_missing_parameters(self, client) -> None:
        resp = client.get("/validate", params={"key": "RBX-AAAAAAAA"})

        assert resp.status_code == HTTPStatus.BAD_REQUEST
        assert resp.json() == {"status": "missing_parameters"}

    def test_unknown_key(self, client) -> None:
        resp = client.get("/validate", params={"key": "RBX-UNKNOWN1", "hwid": "hw-1"})

        assert resp.status_code == HTTPStatus.FORBIDDEN
        assert resp.json() == {"status": "invalid"}

    def test_scenario_bind_mismatch_revoke(self, client, services, one_use_token) -> None:
        first = client.get("/validate", params={"key": one_use_token, "hwid": "hw-1"})
        assert first.status_code == HTTPStatus.OK
        assert first.json() == {"status": "valid"}

        second = client.get("/validate", params={"key": one_use_token, "hwid": "hw-2"})
        assert second.status_code == HTTPStatus.FORBIDDEN
        assert second.json() == {"status": "identity_mismatch"}

        services.admin.revoke_key(one_use_token, is_privileged=True)
        third = client.get("/validate", params={"key": one_use_token, "hwid": "hw-1"})
        assert third.json() == {"status": "invalid"}

    def test_blank_identity_falls_back_to_hwid(self, client, services) -> None:
        token = services.admin.issue_key(is_privileged=True, unlimited=True).token

        resp = client.get("/validate", params={"key": token, "identity": "", "hwid": "hw-1"})

        assert resp.status_code == HTTPStatus.OK
        assert services.store.load()[token].bound_identity == "hw-1"

    def test_identity_parameter_for_account_ids(self, client, services) -> None:
        token = services.admin.issue_key(is_privileged=True, unlimited=True).token

        ok = client.get("/validate", params={"key": token, "identity": "acct-42"})
        other = client.get("/validate", params={"key": token, "identity": "acct-99"})

        assert ok.status_code == HTTPStatus.OK
        assert other.status_code == HTTPStatus.FORBIDDEN
        assert other.json() == {"status": "identity_mismatch"}

    def test_exhausted_key(self, client, one_use_token) -> None:
        client.get("/validate", params={"key": one_use_token, "hwid": "hw-1"})

        resp = client.get("/validate", params={"key": one_use_token, "hwid": "hw-1"})

        assert resp.status_code == HTTPStatus.FORBIDDEN
        assert resp.json() == {"status": "exhausted"}

    def test_persistence_failure(self, client, one_use_token, monkeypatch) -> None:
        def failing_write(self, data):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(AtomicJSONStorage, "write", failing_write)

        resp = client.get("/validate", params={"key": one_use_token, "hwid": "hw-1"})

        assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
        assert resp.json() == {"status": "persistence_failure"}

    def test_corrupt_record_is_unavailable(self, client, store) -> None:
        store.path.write_text(
            json.dumps({"keys": {"1": {"token": "RBX-CORRUPT1"}}}), encoding="utf-8"
        )

        resp = client.get("/validate", params={"key": "RBX-CORRUPT1", "hwid": "hw-1"})

        assert resp.status_code == HTTPStatus.SERVICE_UNAVAILABLE
        assert resp.json() == {"status": "persistence_failure"}

    def test_correlation_id_is_echoed(self, client) -> None:
        resp = client.get(
            "/validate",
            params={"key": "RBX-UNKNOWN1", "hwid": "hw-1"},
            headers={"X-Request-ID": "req-123"},
        )

        assert resp.headers["X-Request-ID"] == "req-123"
