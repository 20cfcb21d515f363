"""Unit tests for the Azure Key Vault secret store adapter."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from infrastructure.clients import KeyVaultSecretStore, SecretBundle

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


def secret(name="db-pw", value="s3cret", tags=None, enabled=True, version="v2"):
    return SimpleNamespace(
        name=name,
        value=value,
        properties=SimpleNamespace(tags=tags, enabled=enabled, version=version),
    )


def version_props(version, updated_day, tags=None):
    return SimpleNamespace(
        version=version,
        tags=tags,
        updated_on=datetime(2024, 1, updated_day, tzinfo=timezone.utc),
        created_on=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def disabled_error():
    error = HttpResponseError(
        message="Operation get is not allowed on a disabled secret."
    )
    error.status_code = 403
    return error


async def async_iter(items):
    for item in items:
        yield item


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def store(client):
    return KeyVaultSecretStore(client)


async def test_get_secret_returns_value(store, client):
    client.get_secret.return_value = secret()

    assert await store.get_secret("db-pw") == "s3cret"
    client.get_secret.assert_awaited_once_with("db-pw", None)


async def test_get_missing_secret_returns_none(store, client):
    client.get_secret.side_effect = ResourceNotFoundError("SecretNotFound")

    assert await store.get_secret("ghost") is None
    assert await store.get_secret_with_tags("ghost") is None


async def test_get_secret_with_tags(store, client):
    client.get_secret.return_value = secret(tags={"org": "1", "isActive": "true"})

    bundle = await store.get_secret_with_tags("db-pw", "v2")

    assert bundle == SecretBundle(
        name="db-pw",
        value="s3cret",
        tags={"org": "1", "isActive": "true"},
        enabled=True,
        version="v2",
    )


async def test_missing_tags_become_empty_dict(store, client):
    client.get_secret.return_value = secret(tags=None)

    bundle = await store.get_secret_with_tags("db-pw")

    assert bundle.tags == {}


async def test_disabled_secret_is_read_from_version_properties(store, client):
    client.get_secret.side_effect = disabled_error()
    client.list_properties_of_secret_versions = MagicMock(
        return_value=async_iter(
            [
                version_props("v1", 2, {"isActive": "true"}),
                version_props("v2", 9, {"isActive": "false"}),
            ]
        )
    )

    bundle = await store.get_secret_with_tags("db-pw")

    assert bundle.value is None
    assert bundle.enabled is False
    assert bundle.version == "v2"
    assert bundle.tags == {"isActive": "false"}


async def test_disabled_secret_specific_version(store, client):
    client.get_secret.side_effect = disabled_error()
    client.list_properties_of_secret_versions = MagicMock(
        return_value=async_iter([version_props("v1", 2), version_props("v2", 9)])
    )

    bundle = await store.get_secret_with_tags("db-pw", "v1")

    assert bundle.version == "v1"


async def test_other_http_errors_propagate(store, client):
    error = HttpResponseError(message="Too many requests")
    error.status_code = 429
    client.get_secret.side_effect = error

    with pytest.raises(HttpResponseError):
        await store.get_secret_with_tags("db-pw")


async def test_set_secret_returns_version(store, client):
    client.set_secret.return_value = secret(version="v3")

    assert await store.set_secret("db-pw", "new", tags={"org": "1"}) == "v3"
    client.set_secret.assert_awaited_once_with(
        "db-pw", "new", tags={"org": "1"}, enabled=True
    )


async def test_update_secret_tags(store, client):
    await store.update_secret_tags("db-pw", {"isActive": "true"}, "v2", enabled=True)

    client.update_secret_properties.assert_awaited_once_with(
        "db-pw", "v2", tags={"isActive": "true"}, enabled=True
    )


async def test_update_tags_leaves_enabled_alone_by_default(store, client):
    await store.update_secret_tags("db-pw", {"isActive": "false"})

    client.update_secret_properties.assert_awaited_once_with(
        "db-pw", None, tags={"isActive": "false"}
    )


async def test_delete_and_purge(store, client):
    assert await store.delete_secret("db-pw") is True

    client.delete_secret.side_effect = ResourceNotFoundError("gone")
    client.purge_deleted_secret.side_effect = ResourceNotFoundError("gone")

    assert await store.delete_secret("db-pw") is False
    await store.purge_deleted_secret("db-pw")


async def test_close_closes_client_and_credential(client):
    credential = AsyncMock()
    store = KeyVaultSecretStore(client, credential=credential)

    await store.close()

    client.close.assert_awaited_once()
    credential.close.assert_awaited_once()
