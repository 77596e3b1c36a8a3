"""
Credential directory: static and SQL-backed lookups, hashing, scope registration checks.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from login_server.directory import (
    ApiResource,
    Client,
    GrantType,
    SqlDirectory,
    StaticDirectory,
    hash_secret,
    verify_client_secret,
    verify_secret,
)
from login_server.models import ApiResourceRecord, Base, ClientRecord
from login_server.seed import seed_database


@pytest.fixture
def sql_directory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    try:
        seed_database(db, rounds=4)
    finally:
        db.close()
    yield SqlDirectory(factory), factory
    engine.dispose()


def test_hash_and_verify():
    h = hash_secret("s3cret", rounds=4)
    assert h != "s3cret"
    assert verify_secret("s3cret", h)
    assert not verify_secret("other", h)


def test_verify_secret_with_malformed_hash():
    assert verify_secret("x", "not-a-bcrypt-hash") is False


def test_static_lookup(directory):
    client = directory.find_client("clientCredentialsClient")
    assert client.allowed_grant_types == {GrantType.CLIENT_CREDENTIALS}
    assert client.allowed_scopes == {"dummy1", "dummy2"}
    assert verify_client_secret(client, "secret")
    assert not verify_client_secret(client, "")
    assert not verify_client_secret(client, None)
    assert not verify_client_secret(None, "secret")
    assert directory.find_client("nobody") is None


def test_static_user_lookup(directory):
    assert directory.find_user("alice", "alice").subject_id == "1"
    assert directory.find_user("alice", "bob") is None
    assert directory.find_user("mallory", "x") is None


def test_static_resources(directory):
    names = {r.name for r in directory.list_api_resources()}
    assert names == {"dummy1", "dummy2"}


def test_client_with_unregistered_scope_is_rejected():
    client = Client(
        client_id="c",
        secret_hash=hash_secret("s", rounds=4),
        allowed_grant_types=frozenset({GrantType.CLIENT_CREDENTIALS}),
        allowed_scopes=frozenset({"dummy1", "billing"}),
    )
    with pytest.raises(ValueError, match="billing"):
        StaticDirectory([client], [], [ApiResource("dummy1", "Dummy 1")])


def test_sql_directory_matches_seed(sql_directory):
    sql, _ = sql_directory
    client = sql.find_client("resourceOwnerClient")
    assert client.allowed_grant_types == {GrantType.PASSWORD}
    assert client.allowed_scopes == {"dummy1"}
    assert verify_client_secret(client, "secret")
    assert sql.find_user("bob", "bob").subject_id == "2"
    assert sql.find_user("bob", "alice") is None
    assert sql.find_user("nobody", "x") is None
    assert {r.name for r in sql.list_api_resources()} == {"dummy1", "dummy2"}


def test_seed_database_is_idempotent(sql_directory):
    _, factory = sql_directory
    db = factory()
    try:
        seed_database(db, rounds=4)
        assert db.query(ClientRecord).count() == 2
        assert db.query(ApiResourceRecord).count() == 2
    finally:
        db.close()


def test_sql_directory_skips_misconfigured_clients(sql_directory):
    sql, factory = sql_directory
    db = factory()
    try:
        db.add(
            ClientRecord(
                client_id="badScopes",
                client_secret_hash=hash_secret("s", rounds=4),
                grant_types="client_credentials",
                scopes="dummy1 billing",
            )
        )
        db.add(
            ClientRecord(
                client_id="badGrant",
                client_secret_hash=hash_secret("s", rounds=4),
                grant_types="implicit",
                scopes="dummy1",
            )
        )
        db.commit()
    finally:
        db.close()
    assert sql.find_client("badScopes") is None
    assert sql.find_client("badGrant") is None
