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
"""Page pattern specs: exact paths, wildcards and regular expressions.

Pattern strings are classified once, at configuration load:

* ``^...$`` is a regular expression that must match the whole path.
* ``/*`` and ``/prefix/*`` match a path prefix, ``*.ext`` matches an
  extension, and any other pattern containing ``*`` or ``?`` is an fnmatch
  glob.
* Anything else is an exact path.

Exact paths and globs not starting with ``*`` are rooted like request paths.
A ``?`` in a pattern is always a wildcard, never a query string.

Wildcard and regex rules report the pattern itself as their resource
identifier, so every path they match shares one page token.
"""

from __future__ import annotations

import enum
import posixpath
import re
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Union

from csrfguard.kernel.exceptions import PatternCompilationException

_SLASHES_RE = re.compile(r"/{2,}")


class PatternKind(enum.Enum):
    EXACT = "exact"
    GLOB = "glob"
    REGEX = "regex"


def normalize_path(uri: str) -> str:
    """Strip query string and fragment, then root and collapse the path.

    ``..`` and ``.`` segments are resolved so that a request cannot step
    out of an unprotected prefix into a protected one. A trailing slash is
    dropped, except for the root itself.
    """
    return _root_path(uri.split("#", 1)[0].split("?", 1)[0])


def _root_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return posixpath.normpath(_SLASHES_RE.sub("/", path))


def path_extension(path: str) -> str | None:
    """Return the lower-cased extension of the last path segment, if any."""
    segment = path.rsplit("/", 1)[-1]
    dot = segment.rfind(".")
    if dot <= 0 or dot == len(segment) - 1:
        return None
    return segment[dot + 1 :].lower()


@dataclass(frozen=True)
class ExactPattern:
    """Matches one path by string equality."""

    path: str
    kind: PatternKind = field(default=PatternKind.EXACT, init=False)

    @property
    def identifier(self) -> str:
        return self.path

    def matches(self, path: str) -> bool:
        return path == self.path


@dataclass(frozen=True)
class GlobPattern:
    """Matches a path prefix (``/a/*``), an extension (``*.jsp``) or an fnmatch glob."""

    pattern: str
    kind: PatternKind = field(default=PatternKind.GLOB, init=False)

    @property
    def identifier(self) -> str:
        return self.pattern

    def matches(self, path: str) -> bool:
        pattern = self.pattern
        if pattern == "/*":
            return True
        if pattern.endswith("/*") and "*" not in pattern[:-2]:
            prefix = pattern[:-2]
            return path == prefix or path.startswith(prefix + "/")
        if pattern.startswith("*.") and "*" not in pattern[2:]:
            segment = path.rsplit("/", 1)[-1]
            dot = segment.rfind(".")
            return dot >= 0 and dot != len(segment) - 1 and segment[dot + 1 :] == pattern[2:]
        return fnmatchcase(path, pattern)


@dataclass(frozen=True)
class RegexPattern:
    """Matches a path when the compiled expression matches all of it."""

    pattern: str
    compiled: re.Pattern[str] = field(compare=False)
    kind: PatternKind = field(default=PatternKind.REGEX, init=False)

    @property
    def identifier(self) -> str:
        return self.pattern

    def matches(self, path: str) -> bool:
        return self.compiled.fullmatch(path) is not None


PatternSpec = Union[ExactPattern, GlobPattern, RegexPattern]


def is_regex_pattern(spec: str) -> bool:
    return spec.startswith("^") and spec.endswith("$")


def parse_pattern(spec: str) -> PatternSpec:
    """Compile one configured page pattern.

    Raises:
        PatternCompilationException: If the pattern is empty or an invalid regex.
    """
    spec = spec.strip()
    if not spec:
        raise PatternCompilationException("Page pattern must not be empty", code="CSRF_CONFIG_PATTERN")
    if is_regex_pattern(spec):
        try:
            return RegexPattern(spec, re.compile(spec))
        except re.error as exc:
            raise PatternCompilationException(
                f"Invalid regular expression '{spec}': {exc}",
                code="CSRF_CONFIG_PATTERN",
                context={"pattern": spec},
            ) from exc
    if "*" in spec or "?" in spec:
        return GlobPattern(spec if spec.startswith(("/", "*")) else "/" + spec)
    return ExactPattern(_root_path(spec))
