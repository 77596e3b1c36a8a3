"""
RSA signing key for access tokens, and the public key set published to resource servers.

SigningKeyProvider is constructed once at startup and injected into the TokenIssuer and the
KeyPublisher; tests build a disposable in-memory provider with SigningKeyProvider.generate().
The key id is the RFC 7638 JWK thumbprint, so a new key never reuses a cached kid.
An optional previous key is published (tokens it signed still verify) but never signs.
"""
import base64
import hashlib
import json
import logging
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey, generate_private_key

logger = logging.getLogger(__name__)

_KEY_BITS = 2048
SIGNING_ALGORITHM = "RS256"


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, "big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def jwk_thumbprint(public_key: RSAPublicKey) -> str:
    """RFC 7638 thumbprint: SHA-256 over the required members in lexicographic order."""
    numbers = public_key.public_numbers()
    members = {"e": _b64url_uint(numbers.e), "kty": "RSA", "n": _b64url_uint(numbers.n)}
    canonical = json.dumps(members, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(hashlib.sha256(canonical).digest()).rstrip(b"=").decode("ascii")


def public_key_to_jwk(public_key: RSAPublicKey, kid: str) -> dict:
    """Export an RSA public key as a JWK with the given kid."""
    numbers = public_key.public_numbers()
    return {
        "kty": "RSA",
        "kid": kid,
        "alg": SIGNING_ALGORITHM,
        "use": "sig",
        "n": _b64url_uint(numbers.n),
        "e": _b64url_uint(numbers.e),
    }


def _serialize_private(key: RSAPrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _load_private(path: Path) -> RSAPrivateKey:
    key = serialization.load_pem_private_key(path.read_bytes(), password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError(f"{path} does not contain an RSA private key")
    return key


class SigningKeyProvider:
    """Owns the process-wide key pair. Read-only after construction."""

    def __init__(self, private_key: RSAPrivateKey, previous_public_keys: list[RSAPublicKey] | None = None):
        self._private_key = private_key
        self._key_id = jwk_thumbprint(private_key.public_key())
        self._public_keys: dict[str, RSAPublicKey] = {self._key_id: private_key.public_key()}
        for public_key in previous_public_keys or []:
            self._public_keys.setdefault(jwk_thumbprint(public_key), public_key)

    @classmethod
    def generate(cls) -> "SigningKeyProvider":
        return cls(generate_private_key(public_exponent=65537, key_size=_KEY_BITS))

    @classmethod
    def load_or_create(cls, path: str, previous_path: str | None = None) -> "SigningKeyProvider":
        """
        Load the RSA private key from path, or generate one and save it there.
        previous_path, if set and readable, contributes a verification-only public key.
        """
        p = Path(path)
        key = None
        if p.exists():
            try:
                key = _load_private(p)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load signing key from %s: %s; generating new key", path, e)
        if key is None:
            key = generate_private_key(public_exponent=65537, key_size=_KEY_BITS)
            try:
                p.write_bytes(_serialize_private(key))
                logger.info("Generated and saved signing key to %s", path)
            except OSError as e:
                logger.warning("Could not save signing key to %s: %s", path, e)

        previous: list[RSAPublicKey] = []
        if previous_path:
            try:
                previous.append(_load_private(Path(previous_path)).public_key())
                logger.info("Loaded previous signing key from %s for verification", previous_path)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load previous signing key from %s: %s", previous_path, e)
        return cls(key, previous)

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def signing_key(self) -> RSAPrivateKey:
        """Private key for the TokenIssuer only."""
        return self._private_key

    def public_keys(self) -> dict[str, RSAPublicKey]:
        return dict(self._public_keys)


class KeyPublisher:
    """Serves the currently valid public keys as a JWK Set. No state of its own."""

    def __init__(self, provider: SigningKeyProvider):
        self._provider = provider

    def jwks(self) -> dict:
        return {"keys": [public_key_to_jwk(pub, kid) for kid, pub in self._provider.public_keys().items()]}
