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
"""Tests for CsrfGuardFilter running inside WebFilterChainMiddleware."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from csrfguard import CsrfGuard, SessionAttributes
from csrfguard.web.adapters.starlette import CsrfGuardFilter, WebFilterChainMiddleware
from csrfguard.web.filters import OncePerRequestFilter

TOKEN_NAME = "OWASP-CSRFGUARD"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FixedSessionFilter(OncePerRequestFilter):
    """Attaches the same host session to every request."""

    def __init__(self, bag: SessionAttributes) -> None:
        self.bag = bag

    async def do_filter(self, request, call_next):
        request.state.session = self.bag
        return await call_next(request)


async def _echo_body(request: Request) -> PlainTextResponse:
    body = await request.body()
    return PlainTextResponse(body.decode() or "OK")


def _make_app(guard: CsrfGuard, bag: SessionAttributes | None, **filter_kwargs) -> Starlette:
    filters: list[OncePerRequestFilter] = []
    if bag is not None:
        filters.append(FixedSessionFilter(bag))
    filters.append(CsrfGuardFilter(guard, **filter_kwargs))
    return Starlette(
        routes=[
            Route("/transfer", _echo_body, methods=["GET", "POST"]),
            Route("/health", _echo_body, methods=["GET", "POST"]),
            Route("/static/app.js", _echo_body, methods=["GET", "POST"]),
        ],
        middleware=[Middleware(WebFilterChainMiddleware, filters=filters)],
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestRejection:
    def test_missing_token_gets_403(self, make_guard):
        guard = make_guard()
        client = TestClient(_make_app(guard, SessionAttributes()))
        resp = client.post("/transfer", data={"amount": "10"})
        assert resp.status_code == 403
        assert resp.json() == {"error": "Security violation."}

    def test_wrong_token_gets_403(self, make_guard):
        guard = make_guard()
        bag = SessionAttributes()
        guard.token_for(guard.session(bag), "/transfer")
        client = TestClient(_make_app(guard, bag))
        resp = client.post("/transfer", data={TOKEN_NAME: "forged"})
        assert resp.status_code == 403

    def test_no_session_rejected(self, make_guard):
        client = TestClient(_make_app(make_guard(), None))
        assert client.post("/transfer", data={TOKEN_NAME: "anything"}).status_code == 403

    def test_no_session_permitted_when_configured(self, make_guard):
        client = TestClient(_make_app(make_guard(validate_when_no_session_exists=False), None))
        assert client.post("/transfer").status_code == 200

    def test_configured_error_action(self, make_guard):
        guard = make_guard(actions=[{"name": "error", "parameters": {"status_code": 419, "message": "expired"}}])
        client = TestClient(_make_app(guard, SessionAttributes()))
        resp = client.post("/transfer")
        assert resp.status_code == 419
        assert resp.json() == {"error": "expired"}


class TestAcceptance:
    def test_form_token_accepted_and_body_replayed(self, make_guard):
        guard = make_guard()
        bag = SessionAttributes()
        token = guard.token_for(guard.session(bag), "/transfer")
        client = TestClient(_make_app(guard, bag))

        resp = client.post("/transfer", data={TOKEN_NAME: token, "amount": "10"})

        assert resp.status_code == 200
        assert "amount=10" in resp.text
        assert resp.headers[TOKEN_NAME] == token

    def test_query_token_accepted(self, make_guard):
        guard = make_guard()
        bag = SessionAttributes()
        token = guard.token_for(guard.session(bag), "/transfer")
        client = TestClient(_make_app(guard, bag))
        assert client.post("/transfer", params={TOKEN_NAME: token}).status_code == 200

    def test_header_token_requires_ajax(self, make_guard):
        for ajax, expected in ((True, 200), (False, 403)):
            guard = make_guard(ajax=ajax)
            bag = SessionAttributes()
            token = guard.token_for(guard.session(bag), "/transfer")
            client = TestClient(_make_app(guard, bag))
            resp = client.post("/transfer", headers={TOKEN_NAME: token})
            assert resp.status_code == expected

    def test_rotation_returns_new_token(self, make_guard):
        guard = make_guard(rotate=True)
        bag = SessionAttributes()
        token = guard.token_for(guard.session(bag), "/transfer")
        client = TestClient(_make_app(guard, bag))

        first = client.post("/transfer", data={TOKEN_NAME: token})
        assert first.status_code == 200
        next_token = first.headers[TOKEN_NAME]
        assert next_token != token

        assert client.post("/transfer", data={TOKEN_NAME: token}).status_code == 403

    def test_unprotected_method_passes(self, make_guard):
        client = TestClient(_make_app(make_guard(unprotected_methods=["GET"]), SessionAttributes()))
        resp = client.get("/transfer")
        assert resp.status_code == 200
        assert TOKEN_NAME not in resp.headers

    def test_unprotected_extension_passes(self, make_guard):
        client = TestClient(_make_app(make_guard(unprotected_extensions=["js"]), SessionAttributes()))
        assert client.post("/static/app.js").status_code == 200

    def test_excluded_path_skips_filter(self, make_guard):
        client = TestClient(_make_app(make_guard(), SessionAttributes(), exclude_patterns=["/health"]))
        assert client.post("/health").status_code == 200


class TestSessionCreation:
    def test_new_session_precreates_page_tokens(self, make_guard):
        guard = make_guard(
            token_per_page=True,
            token_per_page_precreate=True,
            protected_pages=["/transfer"],
            unprotected_methods=["GET"],
        )
        bag = SessionAttributes(is_new=True)
        client = TestClient(_make_app(guard, bag))

        assert client.get("/transfer").status_code == 200

        page_token = guard.store.get_page_token(guard.session(bag), "/transfer")
        assert page_token is not None
        assert client.post("/transfer", data={TOKEN_NAME: page_token}).status_code == 200


def _request_double(method: str, path: str, bag: SessionAttributes | None, headers: dict | None = None):
    return SimpleNamespace(
        method=method,
        url=SimpleNamespace(path=path),
        state=SimpleNamespace(session=bag),
        headers=headers or {},
        query_params={},
        client=SimpleNamespace(host="10.0.0.1"),
        scope={},
    )


class TestDoFilter:
    @pytest.mark.asyncio
    async def test_rejection_does_not_call_next(self, make_guard):
        guard = make_guard()
        call_next = AsyncMock()
        request = _request_double("POST", "/transfer", SessionAttributes())
        response = await CsrfGuardFilter(guard).do_filter(request, call_next)
        call_next.assert_not_awaited()
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_accepted_request_gets_token_header(self, make_guard):
        guard = make_guard(ajax=True)
        bag = SessionAttributes()
        token = guard.token_for(guard.session(bag), "/transfer")
        call_next = AsyncMock(return_value=SimpleNamespace(headers={}))

        request = _request_double("POST", "/transfer", bag, headers={TOKEN_NAME: token})
        response = await CsrfGuardFilter(guard).do_filter(request, call_next)

        call_next.assert_awaited_once_with(request)
        assert response.headers == {TOKEN_NAME: token}


class TestShouldNotFilter:
    def test_exclude_patterns(self, make_guard):
        csrf_filter = CsrfGuardFilter(make_guard(), exclude_patterns=["/health", "/public/*"])
        assert csrf_filter.should_not_filter(SimpleNamespace(url=SimpleNamespace(path="/public/a")))
        assert not csrf_filter.should_not_filter(SimpleNamespace(url=SimpleNamespace(path="/transfer")))

    def test_filters_everything_by_default(self, make_guard):
        csrf_filter = CsrfGuardFilter(make_guard())
        assert not csrf_filter.should_not_filter(SimpleNamespace(url=SimpleNamespace(path="/health")))
