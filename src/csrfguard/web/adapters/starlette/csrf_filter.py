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
"""CsrfGuardFilter: session-token CSRF protection for Starlette applications.

* The host session is read from ``request.state.session`` (any object with
  ``id``/``get_attribute``/``set_attribute``/``remove_attribute``/
  ``invalidate``); a missing attribute means "no session".
* The token is taken from the ``token_name`` header when AJAX support is
  enabled, otherwise (or when no header is present) from the query string
  or an urlencoded form body.
* Rejected requests run the configured rejection actions and receive a
  ``JSONResponse`` with the resulting status code (403 by default).
* Accepted requests for protected resources echo the token to use next in
  the ``token_name`` response header.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qs

from starlette.responses import JSONResponse

from csrfguard.guard import CsrfGuard
from csrfguard.session.ports import LogicalSession
from csrfguard.web.filters import OncePerRequestFilter
from csrfguard.web.ports.filter import CallNext

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_BODYLESS_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})


class CsrfGuardFilter(OncePerRequestFilter):
    """Validates the CSRF token of every request through a :class:`CsrfGuard`."""

    def __init__(self, guard: CsrfGuard, exclude_patterns: list[str] | None = None) -> None:
        self._guard = guard
        if exclude_patterns is not None:
            self.exclude_patterns = exclude_patterns

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        method: str = request.method
        path: str = request.url.path
        session = self._logical_session(request)

        token = await self._extract_token(request)
        outcome = self._guard.validate(session, path, method, token)

        if outcome.rejected:
            user = request.scope.get("user")
            rejection = self._guard.handle_rejection(
                outcome,
                session,
                path,
                method,
                remote_ip=request.client.host if request.client else None,
                user=getattr(user, "display_name", None) if user is not None else None,
            )
            return JSONResponse({"error": rejection.message}, status_code=rejection.status_code)

        response = await call_next(request)
        if outcome.token is not None:
            response.headers[self._guard.properties.token_name] = outcome.token
        return response

    def _logical_session(self, request: Any) -> LogicalSession | None:
        bag = getattr(request.state, "session", None)
        if bag is None:
            return None
        session = self._guard.session(bag)
        if getattr(bag, "is_new", False):
            self._guard.on_session_created(session)
        return session

    async def _extract_token(self, request: Any) -> str | None:
        token_name = self._guard.properties.token_name

        if self._guard.properties.ajax:
            header_token: str | None = request.headers.get(token_name)
            if header_token:
                return header_token

        query_token: str | None = request.query_params.get(token_name)
        if query_token:
            return query_token

        if request.method.upper() in _BODYLESS_METHODS:
            return None
        content_type: str = request.headers.get("content-type", "")
        if not content_type.startswith(_FORM_CONTENT_TYPE):
            return None
        body: bytes = await request.body()
        values = parse_qs(body.decode("latin-1"), keep_blank_values=True).get(token_name)
        return values[0] if values else None
