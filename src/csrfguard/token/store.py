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
"""TokenStore: master and per-page tokens kept in the logical session.

Every check-then-write sequence runs inside a per-session critical section,
so concurrent requests of one session never both create a "first" token.
Sessions never share a lock.
"""

from __future__ import annotations

import hmac
import threading
import weakref
from collections.abc import Callable, Iterable

import structlog

from csrfguard.session.ports import LogicalSession

logger = structlog.get_logger(__name__)

TokenSupplier = Callable[[], str]


def tokens_match(supplied: str, expected: str) -> bool:
    """Compare two token values in constant time."""
    return hmac.compare_digest(
        supplied.encode("utf-8", errors="surrogatepass"),
        expected.encode("utf-8", errors="surrogatepass"),
    )


class _SessionLock:
    """Re-entrant lock for one session; weakly held by the store."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def __enter__(self) -> _SessionLock:
        self._lock.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self._lock.release()


class TokenStore:
    """Reads, creates and rotates the tokens of a logical session.

    Args:
        token_supplier: Produces a fresh random token on each call.
    """

    def __init__(self, token_supplier: TokenSupplier) -> None:
        self._token_supplier = token_supplier
        self._locks: weakref.WeakValueDictionary[str, _SessionLock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def lock_for(self, session: LogicalSession) -> _SessionLock:
        """Return the critical section of *session*, creating it if needed."""
        with self._locks_guard:
            lock = self._locks.get(session.key)
            if lock is None:
                lock = _SessionLock()
                self._locks[session.key] = lock
            return lock

    def discard(self, session: LogicalSession) -> None:
        """Forget the lock of a session that has ended."""
        with self._locks_guard:
            self._locks.pop(session.key, None)

    # ------------------------------------------------------------------
    # Master token
    # ------------------------------------------------------------------

    def get_master_token(self, session: LogicalSession) -> str | None:
        return session.get_master_token()

    def ensure_master_token(self, session: LogicalSession) -> str:
        """Return the master token, generating and storing it if absent."""
        token = session.get_master_token()
        if token is not None:
            return token
        with self.lock_for(session):
            token = session.get_master_token()
            if token is None:
                token = self._token_supplier()
                session.set_master_token(token)
                logger.info("master_token_created", session=session.key)
            return token

    def rotate_master_token(self, session: LogicalSession) -> str:
        """Replace the master token with a new value and return it."""
        with self.lock_for(session):
            token = self._fresh_token(session.get_master_token())
            session.set_master_token(token)
            logger.info("master_token_rotated", session=session.key)
            return token

    # ------------------------------------------------------------------
    # Page tokens
    # ------------------------------------------------------------------

    def get_page_token(self, session: LogicalSession, resource_identifier: str) -> str | None:
        return session.get_page_tokens().get(resource_identifier)

    def get_page_tokens(self, session: LogicalSession) -> dict[str, str]:
        """Return a copy of the page token map."""
        return session.get_page_tokens()

    def ensure_page_token(self, session: LogicalSession, resource_identifier: str) -> str:
        """Return the page token of *resource_identifier*, creating it if absent."""
        token = self.get_page_token(session, resource_identifier)
        if token is not None:
            return token
        with self.lock_for(session):
            tokens = session.get_page_tokens()
            token = tokens.get(resource_identifier)
            if token is None:
                token = self._token_supplier()
                tokens[resource_identifier] = token
                session.set_page_tokens(tokens)
                logger.info("page_token_created", session=session.key, resource=resource_identifier)
            return token

    def rotate_page_token(self, session: LogicalSession, resource_identifier: str) -> str:
        """Replace the page token of *resource_identifier* and return the new value."""
        with self.lock_for(session):
            tokens = session.get_page_tokens()
            token = self._fresh_token(tokens.get(resource_identifier))
            tokens[resource_identifier] = token
            session.set_page_tokens(tokens)
            logger.info("page_token_rotated", session=session.key, resource=resource_identifier)
            return token

    def precreate_all_page_tokens(self, session: LogicalSession, resource_identifiers: Iterable[str]) -> None:
        """Fill the page token map for every known protected resource.

        Existing page tokens are kept. The master token is created too, and
        the session is marked so that precreation runs only once.
        """
        with self.lock_for(session):
            self.ensure_master_token(session)
            tokens = session.get_page_tokens()
            created = 0
            for resource_identifier in resource_identifiers:
                if resource_identifier not in tokens:
                    tokens[resource_identifier] = self._token_supplier()
                    created += 1
            session.set_page_tokens(tokens)
            session.mark_tokens_generated()
            logger.info("page_tokens_precreated", session=session.key, count=created)

    def rotate_all_tokens(self, session: LogicalSession) -> None:
        """Rotate the master token and every existing page token."""
        with self.lock_for(session):
            self.rotate_master_token(session)
            tokens = session.get_page_tokens()
            if tokens:
                session.set_page_tokens({rid: self._fresh_token(old) for rid, old in tokens.items()})
                logger.info("page_tokens_rotated", session=session.key, count=len(tokens))

    def regenerate_used_page_token(
        self,
        session: LogicalSession,
        exposed_value: str,
        exclude: str | None = None,
    ) -> list[str]:
        """Rotate every page token whose value equals *exposed_value*.

        Args:
            exposed_value: A token value seen in a request it was not valid for.
            exclude: A resource identifier to leave untouched.

        Returns:
            The resource identifiers whose tokens were rotated.
        """
        if not exposed_value:
            return []
        with self.lock_for(session):
            tokens = session.get_page_tokens()
            rotated = [
                rid
                for rid, value in tokens.items()
                if rid != exclude and tokens_match(exposed_value, value)
            ]
            if rotated:
                for rid in rotated:
                    tokens[rid] = self._fresh_token(tokens[rid])
                session.set_page_tokens(tokens)
                logger.info("exposed_page_tokens_rotated", session=session.key, resources=rotated)
            return rotated

    def _fresh_token(self, previous: str | None) -> str:
        token = self._token_supplier()
        while token == previous:
            token = self._token_supplier()
        return token
