import pytest
import requests

from warpbuild.src.credentials import store as store_module
from warpbuild.src.credentials.kinds import CredentialKind
from warpbuild.src.credentials.store import (
    CredentialsAPI,
    CredentialStore,
    determine_missing_credentials,
)
from warpbuild.src.errors import (
    CredentialFetchError,
    GenerationError,
    MissingCredentialError,
    PersistError,
)
from tests.fakes import DIST_CERT, FULL_CREDENTIALS, PROFILE, PUSH_KEY, FakeResponse, FakeSession

SERVER = {"url": "https://builds.example.com/api", "access_token": "tok"}


def make_store(*responses):
    session = FakeSession(*responses)
    return CredentialStore(CredentialsAPI(SERVER, session=session)), session


def test_nothing_missing():
    assert determine_missing_credentials(FULL_CREDENTIALS) is None


def test_everything_missing_in_canonical_order():
    assert determine_missing_credentials({}) == [
        CredentialKind.DISTRIBUTION_CERT,
        CredentialKind.PUSH_KEY,
        CredentialKind.PROVISIONING_PROFILE,
    ]


def test_legacy_push_cert_satisfies_push():
    existing = {
        CredentialKind.DISTRIBUTION_CERT: DIST_CERT,
        CredentialKind.PUSH_CERT: {"pushP12": "cDEy", "pushPassword": "pw", "pushId": "P1"},
        CredentialKind.PROVISIONING_PROFILE: PROFILE,
    }
    assert determine_missing_credentials(existing) is None


def test_incomplete_credential_counts_as_missing():
    existing = dict(FULL_CREDENTIALS)
    existing[CredentialKind.PUSH_KEY] = {"apnsKeyId": "KEY123"}
    assert determine_missing_credentials(existing) == [CredentialKind.PUSH_KEY]


def test_fetch_parses_wire_format(project_metadata):
    store, session = make_store(
        FakeResponse(
            json_data={
                "credentials": {
                    "distributionCert": DIST_CERT,
                    "pushKey": PUSH_KEY,
                    "somethingElse": {"a": 1},
                }
            }
        )
    )

    credentials = store.fetch(project_metadata)

    assert credentials == {
        CredentialKind.DISTRIBUTION_CERT: DIST_CERT,
        CredentialKind.PUSH_KEY: PUSH_KEY,
    }
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", "https://builds.example.com/api/credentials/ios")
    assert kwargs["params"]["experienceName"] == "@jane/rocket"
    assert kwargs["headers"]["Authorization"] == "Bearer tok"


def test_fetch_without_stored_credentials(project_metadata):
    store, _ = make_store(FakeResponse(json_data={"credentials": None}))
    assert store.fetch(project_metadata) == {}


def test_fetch_failure(project_metadata):
    store, _ = make_store(FakeResponse(status_code=500))
    with pytest.raises(CredentialFetchError):
        store.fetch(project_metadata)


def test_clear_sends_kinds_in_order(project_metadata):
    store, session = make_store(FakeResponse())

    store.clear(
        project_metadata,
        frozenset({CredentialKind.PROVISIONING_PROFILE, CredentialKind.DISTRIBUTION_CERT}),
    )

    method, url, kwargs = session.requests[0]
    assert url.endswith("/credentials/ios/clear")
    assert kwargs["json"]["only"] == ["distributionCert", "provisioningProfile"]
    assert kwargs["json"]["bundleIdentifier"] == "com.jane.rocket"


def test_clear_failure(project_metadata):
    store, _ = make_store(requests.ConnectionError("refused"))
    with pytest.raises(PersistError):
        store.clear(project_metadata, [CredentialKind.PUSH_KEY])


def test_update_sends_credentials_and_reused_ids(project_metadata):
    store, session = make_store(FakeResponse())

    store.update(project_metadata, {CredentialKind.PUSH_KEY: PUSH_KEY}, ["42"])

    _, url, kwargs = session.requests[0]
    assert url.endswith("/credentials/ios/update")
    assert kwargs["json"]["credentials"] == {"pushKey": PUSH_KEY}
    assert kwargs["json"]["userCredentialsIds"] == ["42"]


def test_update_failure(project_metadata):
    store, _ = make_store(FakeResponse(status_code=403))
    with pytest.raises(PersistError):
        store.update(project_metadata, {CredentialKind.PUSH_KEY: PUSH_KEY}, [])


def test_serial_from_stored_value(project_metadata):
    cert = dict(DIST_CERT, certSerialNumber="5a0b1c")
    store, _ = make_store(FakeResponse(json_data={"credentials": {"distributionCert": cert}}))
    assert store.get_distribution_cert_serial_number(project_metadata) == "5A0B1C"


def test_serial_read_from_p12(project_metadata, monkeypatch):
    cert = {k: v for k, v in DIST_CERT.items() if k != "certSerialNumber"}
    store, _ = make_store(FakeResponse(json_data={"credentials": {"distributionCert": cert}}))
    seen = []

    def fake_serial(p12, password):
        seen.append((p12, password))
        return "77AA"

    monkeypatch.setattr(store_module, "p12_serial_number", fake_serial)

    assert store.get_distribution_cert_serial_number(project_metadata) == "77AA"
    assert seen == [(cert["certP12"], "secret")]


def test_serial_unreadable_p12(project_metadata, monkeypatch):
    cert = {k: v for k, v in DIST_CERT.items() if k != "certSerialNumber"}
    store, _ = make_store(FakeResponse(json_data={"credentials": {"distributionCert": cert}}))

    def broken(p12, password):
        raise RuntimeError("mac verify failure")

    monkeypatch.setattr(store_module, "p12_serial_number", broken)

    with pytest.raises(GenerationError):
        store.get_distribution_cert_serial_number(project_metadata)


def test_serial_without_certificate(project_metadata):
    store, _ = make_store(FakeResponse(json_data={"credentials": {}}))
    with pytest.raises(MissingCredentialError):
        store.get_distribution_cert_serial_number(project_metadata)


def test_list_user_credentials_filters_by_kind():
    store, _ = make_store(
        FakeResponse(
            json_data={
                "credentials": [
                    {"id": 1, "type": "pushKey", "apnsKeyId": "K1"},
                    {"id": 2, "type": "distributionCert"},
                ]
            }
        )
    )
    assert store.list_user_credentials("jane", CredentialKind.PUSH_KEY) == [
        {"id": 1, "type": "pushKey", "apnsKeyId": "K1"}
    ]


def test_list_user_credentials_errors_are_not_fatal():
    store, _ = make_store(FakeResponse(status_code=502))
    assert store.list_user_credentials("jane", CredentialKind.PUSH_KEY) == []


def test_serial_from_corrupt_p12(project_metadata):
    cert = {"certP12": "abc", "certPassword": "secret"}
    store, _ = make_store(FakeResponse(json_data={"credentials": {"distributionCert": cert}}))

    with pytest.raises(GenerationError):
        store.get_distribution_cert_serial_number(project_metadata)
