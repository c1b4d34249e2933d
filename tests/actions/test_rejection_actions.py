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
"""Tests for rejection actions and their registry."""

from __future__ import annotations

from typing import Any

import pytest

from csrfguard.actions.base import RejectionAction, RejectionContext, RejectionResponse
from csrfguard.actions.builtin import ErrorAction, InvalidateAction, LogAction, RotateAction
from csrfguard.actions.registry import create_action, register_action, run_actions
from csrfguard.kernel.exceptions import ConfigurationException, CsrfTokenMismatch
from csrfguard.session.attributes import SessionAttributes
from csrfguard.session.logical import AttributeLogicalSession
from csrfguard.token.generator import RandomTokenGenerator, SystemRandomSource
from csrfguard.token.store import TokenStore
from csrfguard.validation.outcome import Reason, ValidationOutcome


def _context(session: AttributeLogicalSession | None = None, **overrides: Any) -> RejectionContext:
    outcome = ValidationOutcome.reject(Reason.TOKEN_MISMATCH, "/transfer")
    values: dict[str, Any] = {
        "outcome": outcome,
        "error": CsrfTokenMismatch(outcome.reason.value, code=outcome.reason.name),
        "store": TokenStore(RandomTokenGenerator(SystemRandomSource(), 16).generate),
        "method": "POST",
        "uri": "/transfer",
        "session": session,
    }
    values.update(overrides)
    return RejectionContext(**values)


def _session() -> AttributeLogicalSession:
    return AttributeLogicalSession(SessionAttributes("sess-1"), "OWASP_CSRFGUARD_KEY", "Owasp_CsrfGuard_Pages_Tokens")


class _Recording:
    def __init__(self) -> None:
        self.calls = 0

    def execute(self, context: RejectionContext) -> None:
        self.calls += 1


class _Exploding:
    def execute(self, context: RejectionContext) -> None:
        raise RuntimeError("boom")


class TestLogAction:
    def test_render_replaces_placeholders(self):
        action = LogAction("%request_method% %request_uri% from %remote_ip% by %user%: %exception_message% [%reason%]")
        context = _context(remote_ip="10.0.0.1", user="alice")
        assert action.render(context) == (
            "POST /transfer from 10.0.0.1 by alice: token does not match the expected value [TOKEN_MISMATCH]"
        )

    def test_anonymous_user(self):
        assert LogAction("%user%").render(_context()) == "<anonymous>"

    def test_execute_does_not_raise(self):
        LogAction().execute(_context())


class TestRotateAction:
    def test_rotates_all_session_tokens(self):
        session = _session()
        context = _context(session)
        master = context.store.ensure_master_token(session)
        page = context.store.ensure_page_token(session, "/admin")

        RotateAction().execute(context)

        assert context.store.get_master_token(session) != master
        assert context.store.get_page_token(session, "/admin") != page

    def test_without_session_is_noop(self):
        RotateAction().execute(_context())


class TestInvalidateAction:
    def test_invalidates_session(self):
        session = _session()
        context = _context(session)
        context.store.ensure_master_token(session)

        InvalidateAction().execute(context)

        assert session.bag.invalidated is True
        assert session.get_master_token() is None


class TestErrorAction:
    def test_sets_response(self):
        context = _context()
        ErrorAction(status_code=419, message="Page expired").execute(context)
        assert context.response == RejectionResponse(419, "Page expired")

    def test_default_response_is_403(self):
        assert _context().response.status_code == 403


class TestRegistry:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("log", LogAction), ("Rotate", RotateAction), ("invalidate", InvalidateAction), ("error", ErrorAction)],
    )
    def test_builtin_actions(self, name: str, expected: type):
        action = create_action(name)
        assert isinstance(action, expected)
        assert isinstance(action, RejectionAction)

    def test_parameters_are_passed(self):
        action = create_action("error", {"status_code": "400", "message": "Bad token"})
        assert isinstance(action, ErrorAction)
        assert (action.status_code, action.message) == (400, "Bad token")

    def test_invalid_parameters_raise_configuration_exception(self):
        with pytest.raises(ConfigurationException):
            create_action("error", {"status_code": "not-a-number"})

    def test_unknown_action_raises_configuration_exception(self):
        with pytest.raises(ConfigurationException) as exc_info:
            create_action("redirect-to-moon")
        assert exc_info.value.code == "CSRF_CONFIG_ACTION"

    def test_register_custom_action(self):
        register_action("recording-test", lambda parameters: _Recording())
        assert isinstance(create_action("recording-test"), _Recording)


class TestRunActions:
    def test_failing_action_does_not_stop_the_rest(self):
        recording = _Recording()
        context = _context()
        run_actions((_Exploding(), recording, ErrorAction(status_code=400)), context)
        assert recording.calls == 1
        assert context.response.status_code == 400
