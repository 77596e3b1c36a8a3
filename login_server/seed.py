"""
Development credential data: two API resources, two clients, two users.
Loaded once at startup into a StaticDirectory, or written into an empty database for the sql backend.
Plain secrets exist only here and are hashed before they reach a directory.
"""
import logging

from sqlalchemy.orm import Session

from login_server.config import BCRYPT_ROUNDS
from login_server.directory import (
    ApiResource,
    Client,
    GrantType,
    StaticDirectory,
    User,
    hash_secret,
)
from login_server.models import ApiResourceRecord, ClientRecord, UserRecord

logger = logging.getLogger(__name__)

API_RESOURCES = [
    ("dummy1", "Dummy Microservice 1"),
    ("dummy2", "Dummy Microservice 2"),
]

# (client_id, secret, grant types, scopes)
CLIENTS = [
    ("clientCredentialsClient", "secret", [GrantType.CLIENT_CREDENTIALS], ["dummy1", "dummy2"]),
    ("resourceOwnerClient", "secret", [GrantType.PASSWORD], ["dummy1"]),
]

# (subject_id, username, password)
USERS = [
    ("1", "alice", "alice"),
    ("2", "bob", "bob"),
]


def build_static_directory(rounds: int = BCRYPT_ROUNDS) -> StaticDirectory:
    """Hash the development credentials and load them into an in-memory directory."""
    return StaticDirectory(
        clients=[
            Client(
                client_id=client_id,
                secret_hash=hash_secret(secret, rounds),
                allowed_grant_types=frozenset(grant_types),
                allowed_scopes=frozenset(scopes),
            )
            for client_id, secret, grant_types, scopes in CLIENTS
        ],
        users=[
            User(subject_id=sub, username=username, password_hash=hash_secret(password, rounds))
            for sub, username, password in USERS
        ],
        api_resources=[ApiResource(name=name, display_name=display) for name, display in API_RESOURCES],
    )


def seed_database(db: Session, rounds: int = BCRYPT_ROUNDS) -> None:
    """Insert the development credentials into missing rows (sql backend only)."""
    for name, display in API_RESOURCES:
        if db.query(ApiResourceRecord).filter(ApiResourceRecord.name == name).first() is None:
            db.add(ApiResourceRecord(name=name, display_name=display))
            logger.info("Seeded API resource: %s", name)
    for client_id, secret, grant_types, scopes in CLIENTS:
        if db.query(ClientRecord).filter(ClientRecord.client_id == client_id).first() is None:
            db.add(
                ClientRecord(
                    client_id=client_id,
                    client_secret_hash=hash_secret(secret, rounds),
                    grant_types=" ".join(g.value for g in grant_types),
                    scopes=" ".join(scopes),
                )
            )
            logger.info("Seeded client: %s", client_id)
        else:
            logger.debug("Client already exists: %s", client_id)
    for sub, username, password in USERS:
        if db.query(UserRecord).filter(UserRecord.username == username).first() is None:
            db.add(UserRecord(subject_id=sub, username=username, password_hash=hash_secret(password, rounds)))
            logger.info("Seeded user: %s", username)
    db.commit()
