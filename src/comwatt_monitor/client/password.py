"""Password hashing as the Comwatt web client does it."""

from __future__ import annotations

import hashlib
import re

_SALT_PREFIX = "jbjaonfusor_"
_SALT_SUFFIX = "_4acuttbuik9"
_ENCODED = re.compile(r"[0-9a-f]{64}")


class Password:
    """Wraps a password and exposes the value sent to the authentication endpoint.

    A 64 character lowercase hex string is taken to be an already-encoded
    SHA-256 digest (what gets stored for the remembered user) and is used
    as is; anything else is salted and hashed.
    """

    __slots__ = ("encoded_value",)

    def __init__(self, value: str) -> None:
        self.encoded_value = value if self.is_encoded(value) else self.encode(value)

    @staticmethod
    def is_encoded(value: str) -> bool:
        return _ENCODED.fullmatch(value) is not None

    @staticmethod
    def encode(value: str) -> str:
        salted = f"{_SALT_PREFIX}{value}{_SALT_SUFFIX}"
        return hashlib.sha256(salted.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return "Password(***)"
