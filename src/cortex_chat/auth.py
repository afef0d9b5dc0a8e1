"""
Key-pair JWT generation for the Snowflake Cortex agent API.

The remote verifier identifies the caller by ``ACCOUNT.USER`` and binds the
token to a key pair through the public key fingerprint embedded in the issuer.
Tokens are signed locally with RS256, no network call is involved.
"""

import base64
import hashlib
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

import jwt
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import CredentialError

logger = structlog.get_logger()

ALGORITHM = "RS256"
TOKEN_TYPE = "KEYPAIR_JWT"


def prepare_account_name(raw_account: str) -> str:
    """
    Normalize an account identifier for use in the JWT subject.

    Global (replicated) accounts keep the segment before the first ``-``,
    everything else keeps the segment before the first ``.``.
    """
    if ".global" in raw_account:
        account = raw_account.split("-")[0]
    else:
        account = raw_account.split(".")[0]
    return account.upper()


@dataclass(frozen=True)
class Principal:
    """Canonical identity the token is issued for."""

    account: str
    user: str

    @classmethod
    def from_raw(cls, account: str, user: str) -> "Principal":
        return cls(account=prepare_account_name(account), user=user.upper())

    @property
    def qualified_name(self) -> str:
        return f"{self.account}.{self.user}"


@dataclass(frozen=True)
class Credential:
    """A signed token plus the local time at which it must be replaced."""

    token: str
    issued_at: float
    renew_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.renew_at


def load_private_key(
    path: str, passphrase: Optional[str] = None
) -> rsa.RSAPrivateKey:
    """
    Load a PEM-encoded RSA private key.

    Raises:
        CredentialError: If the file is unreadable, malformed or not an RSA key.
    """
    try:
        pem = Path(path).read_bytes()
    except OSError as e:
        raise CredentialError(f"Cannot read private key at {path}: {e}") from e

    try:
        private_key = serialization.load_pem_private_key(
            pem, password=passphrase.encode() if passphrase else None
        )
    except (ValueError, TypeError) as e:
        raise CredentialError(f"Invalid private key at {path}: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CredentialError(
            f"Private key at {path} is not an RSA key, {ALGORITHM} requires one"
        )
    return private_key


def public_key_fingerprint(private_key: rsa.RSAPrivateKey) -> str:
    """
    Fingerprint of the public half of the key pair as the verifier computes it:
    SHA-256 over the DER-encoded SubjectPublicKeyInfo, standard base64.
    """
    der_public_key = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = hashlib.sha256(der_public_key).digest()
    return f"SHA256:{base64.b64encode(digest).decode('ascii')}"


class KeyPairJWTGenerator:
    """
    Issues and caches key-pair JWTs, renewing them before they go stale.

    The cached credential is replaced, never mutated, so readers always see a
    complete token. Two callers racing to renew both get valid tokens.
    """

    def __init__(
        self,
        account: str,
        user: str,
        private_key: rsa.RSAPrivateKey,
        lifetime: int = 180 * 60,
        renewal_delay: int = 180 * 60,
        clock: Callable[[], float] = time.time,
    ):
        if not isinstance(private_key, rsa.RSAPrivateKey):
            raise CredentialError(f"{ALGORITHM} signing requires an RSA private key")

        self.principal = Principal.from_raw(account, user)
        self.lifetime = lifetime
        self.renewal_delay = renewal_delay
        self._private_key = private_key
        self._clock = clock
        self._lock = threading.Lock()

        self.fingerprint = public_key_fingerprint(private_key)
        self._credential = self.generate_token()

    @classmethod
    def from_key_file(
        cls,
        account: str,
        user: str,
        private_key_path: str,
        passphrase: Optional[str] = None,
        **kwargs,
    ) -> "KeyPairJWTGenerator":
        """Build a generator from a PEM file on disk."""
        return cls(account, user, load_private_key(private_key_path, passphrase), **kwargs)

    @classmethod
    def from_config(cls, config) -> "KeyPairJWTGenerator":
        return cls.from_key_file(
            config.account,
            config.user,
            config.private_key_path,
            passphrase=config.private_key_passphrase,
            lifetime=config.token_lifetime,
            renewal_delay=config.token_renewal_delay,
        )

    @property
    def credential(self) -> Credential:
        return self._credential

    def generate_token(self) -> Credential:
        """Sign a fresh token. Does not touch the cache."""
        now = self._clock()
        qualified_name = self.principal.qualified_name
        payload = {
            "iss": f"{qualified_name}.{self.fingerprint}",
            "sub": qualified_name,
            "iat": int(now),
            "exp": int(now + self.lifetime),
        }
        token = jwt.encode(payload, self._private_key, algorithm=ALGORITHM)

        logger.info(
            "Generated key-pair JWT",
            subject=qualified_name,
            issued_at=payload["iat"],
            expires_at=payload["exp"],
        )
        return Credential(token=token, issued_at=now, renew_at=now + self.renewal_delay)

    def get_token(self) -> str:
        """Return a valid bearer token, renewing it once the renewal time is reached."""
        credential = self._credential
        if credential.is_valid(self._clock()):
            return credential.token

        with self._lock:
            if not self._credential.is_valid(self._clock()):
                self._credential = self.generate_token()
            return self._credential.token

    def get_headers(self) -> Dict[str, str]:
        """Authorization headers for a request to the agent endpoint."""
        return {
            "X-Snowflake-Authorization-Token-Type": TOKEN_TYPE,
            "Authorization": f"Bearer {self.get_token()}",
        }
