"""Shared fixtures: RSA key material, a controllable clock and SSE wire helpers."""

import json
import time

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from cortex_chat.auth import KeyPairJWTGenerator


class FakeClock:
    """Clock whose time only moves when a test advances it."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sse_record(data, event: str = "message.delta") -> bytes:
    """Encode one SSE record the way the agent endpoint sends it."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    return f"event: {event}\ndata: {payload}\n\n".encode("utf-8")


def text_delta(text: str) -> dict:
    return {
        "id": "msg_001",
        "object": "message.delta",
        "delta": {"content": [{"index": 0, "type": "text", "text": text}]},
    }


def tool_results_delta(*json_bodies: dict) -> dict:
    return {
        "id": "msg_001",
        "object": "message.delta",
        "delta": {
            "content": [
                {
                    "index": 0,
                    "type": "tool_results",
                    "tool_results": {
                        "name": "supply_chain",
                        "content": [{"type": "json", "json": body} for body in json_bodies],
                    },
                }
            ]
        },
    }


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def private_key_file(tmp_path, rsa_private_key):
    path = tmp_path / "rsa_key.p8"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


KEY_PASSPHRASE = "correct horse battery staple"


@pytest.fixture
def encrypted_private_key_file(tmp_path, rsa_private_key):
    path = tmp_path / "rsa_key_encrypted.p8"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.BestAvailableEncryption(
                KEY_PASSPHRASE.encode()
            ),
        )
    )
    return path


@pytest.fixture
def clock():
    # Slightly in the past so PyJWT never sees a future iat
    return FakeClock(int(time.time()) - 60)


@pytest.fixture
def jwt_generator(rsa_private_key, clock):
    return KeyPairJWTGenerator(
        account="myorg-myaccount.global",
        user="demo_user",
        private_key=rsa_private_key,
        clock=clock,
    )
