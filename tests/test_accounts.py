import pytest
from google.api_core import exceptions as gexc

from services.errors import ValidationError
from tests.conftest import ALICE


def test_find_account(accounts):
    account = accounts.find_account(ALICE)

    assert account.id == ALICE
    assert account.username == "alice"
    assert account.email == "alice@example.com"


def test_find_missing_account(accounts):
    assert accounts.find_account("ghost") is None
    assert accounts.find_account("") is None


def test_create_account(accounts, fake_client):
    account = accounts.create_account("new-uid", "  newbie ", "new@example.com")

    assert account.username == "newbie"
    assert fake_client.data["users"]["new-uid"]["email"] == "new@example.com"
    assert accounts.find_account("new-uid") == account


def test_create_account_rejects_taken_username(accounts):
    with pytest.raises(ValidationError) as exc_info:
        accounts.create_account("other-uid", "alice", "other@example.com")

    assert exc_info.value.details == {"field": "username"}


def test_username_taken(accounts):
    assert accounts.username_taken("alice")
    assert not accounts.username_taken("zed")


def test_username_lookup_retries_transient_error(accounts, fake_client):
    fake_client.failures = [gexc.ServiceUnavailable("blip")]

    assert accounts.username_taken("alice")
    assert fake_client.calls == ["users.stream", "users.stream"]
