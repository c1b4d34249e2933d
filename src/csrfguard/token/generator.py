# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Random token generation backed by a registry of secure random sources.

Random sources are looked up by name from an explicit registry at
configuration time. Unknown names are configuration errors.
"""

from __future__ import annotations

import hashlib
import os
import secrets
import string
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from csrfguard.kernel.exceptions import ConfigurationException, TokenGenerationException

TOKEN_ALPHABET: str = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"
"""URL-safe alphabet of exactly 64 symbols, so each symbol encodes 6 bits."""

_SYMBOL_MASK = len(TOKEN_ALPHABET) - 1


@runtime_checkable
class SecureRandomSource(Protocol):
    """A source of cryptographically strong random bytes."""

    def random_bytes(self, count: int) -> bytes: ...


class SystemRandomSource:
    """Operating-system CSPRNG (``os.urandom`` via :mod:`secrets`)."""

    def random_bytes(self, count: int) -> bytes:
        return secrets.token_bytes(count)


class HashDrbgSource:
    """Seedable SHA-256 counter-mode generator.

    Output block *n* is ``SHA256(seed || n)``. With an explicit seed the
    sequence is reproducible; without one the seed is drawn from the OS.
    """

    _BLOCK_SIZE = hashlib.sha256().digest_size

    def __init__(self, seed: bytes | None = None) -> None:
        self._seed = seed if seed is not None else os.urandom(self._BLOCK_SIZE)
        self._counter = 0
        self._buffer = b""
        self._lock = threading.Lock()

    def random_bytes(self, count: int) -> bytes:
        with self._lock:
            while len(self._buffer) < count:
                block = hashlib.sha256(self._seed + self._counter.to_bytes(8, "big")).digest()
                self._counter += 1
                self._buffer += block
            result, self._buffer = self._buffer[:count], self._buffer[count:]
            return result


PrngFactory = Callable[[bytes | None], SecureRandomSource]

_PRNG_REGISTRY: dict[str, PrngFactory] = {
    "system": lambda seed: SystemRandomSource(),
    "hash_drbg": lambda seed: HashDrbgSource(seed),
}

# Names accepted for compatibility with existing property files.
_PRNG_ALIASES: dict[str, str] = {
    "sha1prng": "system",
    "nativeprng": "system",
    "secure": "system",
    "drbg": "hash_drbg",
}


def register_prng(name: str, factory: PrngFactory) -> None:
    """Register a random source factory under *name*."""
    _PRNG_REGISTRY[name.lower()] = factory


def create_prng(name: str, seed: str | bytes | None = None) -> SecureRandomSource:
    """Instantiate the random source registered as *name*.

    Raises:
        ConfigurationException: If no source is registered under *name*.
    """
    key = name.lower()
    key = _PRNG_ALIASES.get(key, key)
    factory = _PRNG_REGISTRY.get(key)
    if factory is None:
        raise ConfigurationException(
            f"Unknown PRNG '{name}'. Available: {sorted(_PRNG_REGISTRY)}",
            code="CSRF_CONFIG_PRNG",
            context={"prng": name},
        )
    if isinstance(seed, str):
        seed = seed.encode("utf-8")
    return factory(seed)


def generate(prng: SecureRandomSource, length: int) -> str:
    """Generate a random token of exactly *length* characters.

    Every symbol takes the low 6 bits of one random byte; since 256 is a
    multiple of 64 the mapping carries no bias.

    Raises:
        TokenGenerationException: If the random source fails.
    """
    try:
        raw = prng.random_bytes(length)
    except Exception as exc:
        raise TokenGenerationException(f"unable to generate the random token - {exc}") from exc
    if len(raw) != length:
        raise TokenGenerationException(
            f"random source returned {len(raw)} bytes, expected {length}",
        )
    return "".join(TOKEN_ALPHABET[b & _SYMBOL_MASK] for b in raw)


class RandomTokenGenerator:
    """Generates tokens of a fixed length from one random source."""

    def __init__(self, prng: SecureRandomSource, length: int) -> None:
        if length <= 0:
            raise ConfigurationException(
                f"Token length must be positive, got {length}",
                code="CSRF_CONFIG_TOKEN_LENGTH",
            )
        self._prng = prng
        self._length = length

    @property
    def length(self) -> int:
        return self._length

    def generate(self) -> str:
        return generate(self._prng, self._length)

    __call__ = generate
