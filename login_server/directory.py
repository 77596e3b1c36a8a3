"""
Credential directory: read-only lookup of clients, users and API resources.

The token engine only consumes the CredentialDirectory interface. Two sources are provided:
StaticDirectory (in-memory, loaded once at startup) and SqlDirectory (an externally managed
database read through SQLAlchemy). Secrets and passwords are stored as bcrypt hashes and
compared with bcrypt.checkpw, which runs in constant time for a given hash.
"""
import enum
import functools
import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

import bcrypt
from sqlalchemy.orm import Session, sessionmaker

from login_server.config import BCRYPT_ROUNDS
from login_server.models import ApiResourceRecord, ClientRecord, UserRecord

logger = logging.getLogger(__name__)


class GrantType(str, enum.Enum):
    """OAuth2 grant types supported by the token endpoint (RFC 6749 wire values)."""

    CLIENT_CREDENTIALS = "client_credentials"
    PASSWORD = "password"


@dataclass(frozen=True)
class ApiResource:
    name: str  # doubles as the scope and audience identifier
    display_name: str


@dataclass(frozen=True)
class Client:
    client_id: str
    secret_hash: str
    allowed_grant_types: frozenset[GrantType]
    allowed_scopes: frozenset[str]


@dataclass(frozen=True)
class User:
    subject_id: str
    username: str
    password_hash: str


def _encode(plain: str) -> bytes:
    # Bcrypt has a 72-byte limit
    return plain.encode("utf-8")[:72]


def hash_secret(plain: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds)).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored credential hash is not a valid bcrypt hash")
        return False


@functools.cache
def _dummy_hash() -> str:
    return hash_secret("dummy-password-for-timing", BCRYPT_ROUNDS)


class CredentialDirectory(Protocol):
    def find_client(self, client_id: str) -> Client | None: ...

    def find_user(self, username: str, password: str) -> User | None: ...

    def list_api_resources(self) -> frozenset[ApiResource]: ...


def verify_client_secret(client: Client | None, secret: str | None) -> bool:
    """
    Check secret against the client's hash. Unknown clients and missing secrets still pay for one
    bcrypt comparison, so the outcome cannot be told apart by timing.
    """
    if client is None or not secret:
        verify_secret(secret or "", _dummy_hash())
        return False
    return verify_secret(secret, client.secret_hash)


def _check_client_scopes(client: Client, resource_names: set[str]) -> None:
    unknown = client.allowed_scopes - resource_names
    if unknown:
        raise ValueError(
            f"Client {client.client_id!r} allows unregistered scope(s): {', '.join(sorted(unknown))}"
        )


class StaticDirectory:
    """In-memory directory, immutable after construction."""

    def __init__(
        self,
        clients: Iterable[Client],
        users: Iterable[User],
        api_resources: Iterable[ApiResource],
    ):
        self._api_resources = frozenset(api_resources)
        names = {r.name for r in self._api_resources}
        self._clients: dict[str, Client] = {}
        for client in clients:
            _check_client_scopes(client, names)
            self._clients[client.client_id] = client
        self._users: dict[str, User] = {u.username: u for u in users}

    def find_client(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    def find_user(self, username: str, password: str) -> User | None:
        user = self._users.get(username)
        if user is None:
            # Burn the same bcrypt work so unknown usernames are not distinguishable by timing
            verify_secret(password, _dummy_hash())
            return None
        if not verify_secret(password, user.password_hash):
            return None
        return user

    def list_api_resources(self) -> frozenset[ApiResource]:
        return self._api_resources


def _split(value: str | None) -> list[str]:
    return [s for s in (value or "").split() if s]


class SqlDirectory:
    """
    Directory backed by the users/clients/api_resources tables.
    Each lookup opens a short-lived session and returns frozen records; nothing is written.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _client_from_row(self, row: ClientRecord) -> Client | None:
        try:
            grant_types = frozenset(GrantType(g) for g in _split(row.grant_types))
        except ValueError:
            logger.warning("Client %s has an unknown grant type in %r", row.client_id, row.grant_types)
            return None
        return Client(
            client_id=row.client_id,
            secret_hash=row.client_secret_hash,
            allowed_grant_types=grant_types,
            allowed_scopes=frozenset(_split(row.scopes)),
        )

    def find_client(self, client_id: str) -> Client | None:
        db: Session = self._session_factory()
        try:
            row = db.query(ClientRecord).filter(ClientRecord.client_id == client_id).first()
            if row is None:
                return None
            client = self._client_from_row(row)
            if client is None:
                return None
            names = {r.name for r in db.query(ApiResourceRecord).all()}
            try:
                _check_client_scopes(client, names)
            except ValueError as e:
                logger.warning("Ignoring misconfigured client: %s", e)
                return None
            return client
        finally:
            db.close()

    def find_user(self, username: str, password: str) -> User | None:
        db: Session = self._session_factory()
        try:
            row = db.query(UserRecord).filter(UserRecord.username == username).first()
        finally:
            db.close()
        if row is None:
            verify_secret(password, _dummy_hash())
            return None
        if not verify_secret(password, row.password_hash):
            return None
        return User(subject_id=row.subject_id, username=row.username, password_hash=row.password_hash)

    def list_api_resources(self) -> frozenset[ApiResource]:
        db: Session = self._session_factory()
        try:
            rows = db.query(ApiResourceRecord).all()
            return frozenset(ApiResource(name=r.name, display_name=r.display_name) for r in rows)
        finally:
            db.close()
