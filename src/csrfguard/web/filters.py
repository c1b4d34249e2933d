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
"""OncePerRequestFilter: a WebFilter that can be switched off for some paths.

Only ``request.url.path`` is read, so filters built on this base do not
depend on Starlette.
"""

from __future__ import annotations

import abc
from fnmatch import fnmatch
from typing import Any

from csrfguard.web.ports.filter import CallNext


class OncePerRequestFilter(abc.ABC):
    """Base class for filters that run once per request.

    Attributes:
        exclude_patterns: Glob patterns of request paths the filter skips,
            e.g. health checks mounted in front of the CSRF guard.
    """

    exclude_patterns: list[str] = []

    def should_not_filter(self, request: Any) -> bool:
        path: str = request.url.path
        return any(fnmatch(path, pattern) for pattern in self.exclude_patterns)

    @abc.abstractmethod
    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        """Handle *request*; ``await call_next(request)`` to continue the chain."""
        ...
