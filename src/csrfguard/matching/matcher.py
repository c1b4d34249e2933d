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
"""PageMatcher: decides whether a request path and method need a token."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from csrfguard.matching.patterns import PatternSpec, normalize_path, parse_pattern, path_extension

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProtectionResult:
    """Outcome of a protection check.

    ``resource_identifier`` is the key for per-page token lookup: the rule
    identifier for protected wildcard/regex matches, the normalized path
    otherwise.
    """

    is_protected: bool
    resource_identifier: str


@dataclass(frozen=True)
class ProtectionPolicy:
    """Compiled, immutable page and method rules."""

    protected_pages: tuple[PatternSpec, ...] = ()
    unprotected_pages: tuple[PatternSpec, ...] = ()
    protected_methods: frozenset[str] = frozenset()
    unprotected_methods: frozenset[str] = frozenset()
    unprotected_extensions: frozenset[str] = frozenset()
    protect_all: bool = True

    @classmethod
    def compile(
        cls,
        *,
        protected_pages: Iterable[str] = (),
        unprotected_pages: Iterable[str] = (),
        protected_methods: Iterable[str] = (),
        unprotected_methods: Iterable[str] = (),
        unprotected_extensions: Iterable[str] = (),
        protect_all: bool = True,
    ) -> ProtectionPolicy:
        """Build a policy from configured strings; rule order is preserved.

        Raises:
            PatternCompilationException: If any page pattern is invalid.
        """
        return cls(
            protected_pages=tuple(parse_pattern(p) for p in protected_pages),
            unprotected_pages=tuple(parse_pattern(p) for p in unprotected_pages),
            protected_methods=frozenset(m.strip().upper() for m in protected_methods if m.strip()),
            unprotected_methods=frozenset(m.strip().upper() for m in unprotected_methods if m.strip()),
            unprotected_extensions=frozenset(
                e.strip().lstrip(".").lower() for e in unprotected_extensions if e.strip()
            ),
            protect_all=protect_all,
        )

    @property
    def protected_resource_identifiers(self) -> tuple[str, ...]:
        """Identifiers of every protected page rule, in configuration order."""
        return tuple(dict.fromkeys(rule.identifier for rule in self.protected_pages))

    def is_protected_method(self, method: str) -> bool:
        """Check a method against the method lists.

        The unprotected list wins when both lists name the same method.
        """
        method = method.upper()
        if method in self.unprotected_methods:
            return False
        return not (self.protected_methods and method not in self.protected_methods)


class PageMatcher:
    """Applies a :class:`ProtectionPolicy` to request paths.

    Evaluation order: method lists, unprotected extensions, unprotected
    page rules, protected page rules, then the ``protect_all`` default.
    """

    def __init__(self, policy: ProtectionPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> ProtectionPolicy:
        return self._policy

    def is_protected(self, uri: str, method: str) -> ProtectionResult:
        path = normalize_path(uri)
        policy = self._policy

        if not policy.is_protected_method(method):
            logger.debug("unprotected_method", method=method, path=path)
            return ProtectionResult(False, path)

        extension = path_extension(path)
        if extension is not None and extension in policy.unprotected_extensions:
            logger.debug("unprotected_extension", path=path, extension=extension)
            return ProtectionResult(False, path)

        for rule in policy.unprotected_pages:
            if rule.matches(path):
                logger.debug("unprotected_page", path=path, rule=rule.identifier)
                return ProtectionResult(False, path)

        for rule in policy.protected_pages:
            if rule.matches(path):
                logger.debug("protected_page", path=path, rule=rule.identifier)
                return ProtectionResult(True, rule.identifier)

        return ProtectionResult(policy.protect_all, path)
