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
"""Built-in rejection actions: log, rotate, invalidate and error."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from csrfguard.actions.base import (
    DEFAULT_ERROR_MESSAGE,
    DEFAULT_ERROR_STATUS,
    RejectionContext,
)

logger = structlog.get_logger(__name__)

DEFAULT_LOG_MESSAGE = (
    "potential cross-site request forgery (CSRF) attack thwarted "
    "(user:%user%, ip:%remote_ip%, method:%request_method%, uri:%request_uri%, error:%exception_message%)"
)


class LogAction:
    """Logs the rejection with a ``%placeholder%`` message template.

    Supported placeholders: ``%exception%``, ``%exception_message%``,
    ``%request_method%``, ``%request_uri%``, ``%remote_ip%``, ``%user%``,
    ``%reason%``.
    """

    def __init__(self, message: str = DEFAULT_LOG_MESSAGE) -> None:
        self.message = message

    def render(self, context: RejectionContext) -> str:
        replacements = {
            "%exception%": repr(context.error),
            "%exception_message%": str(context.error),
            "%request_method%": context.method,
            "%request_uri%": context.uri,
            "%remote_ip%": context.remote_ip or "",
            "%user%": context.user or "<anonymous>",
            "%reason%": context.outcome.reason.name,
        }
        message = self.message
        for placeholder, value in replacements.items():
            message = message.replace(placeholder, value)
        return message

    def execute(self, context: RejectionContext) -> None:
        logger.warning(
            self.render(context),
            reason=context.outcome.reason.name,
            resource=context.outcome.resource_identifier,
        )


class RotateAction:
    """Rotates the master token and every page token of the session."""

    def execute(self, context: RejectionContext) -> None:
        if context.session is not None:
            context.store.rotate_all_tokens(context.session)


class InvalidateAction:
    """Ends the session, discarding all of its tokens."""

    def execute(self, context: RejectionContext) -> None:
        if context.session is not None:
            context.session.invalidate()
            context.store.discard(context.session)
            logger.info("session_invalidated", session=context.session.key)


class ErrorAction:
    """Sets the status code and message the filter answers with."""

    def __init__(self, status_code: int = DEFAULT_ERROR_STATUS, message: str = DEFAULT_ERROR_MESSAGE) -> None:
        self.status_code = status_code
        self.message = message

    def execute(self, context: RejectionContext) -> None:
        context.response.status_code = self.status_code
        context.response.message = self.message


def _log_action(parameters: Mapping[str, Any]) -> LogAction:
    return LogAction(str(parameters.get("message", DEFAULT_LOG_MESSAGE)))


def _error_action(parameters: Mapping[str, Any]) -> ErrorAction:
    return ErrorAction(
        status_code=int(parameters.get("status_code", DEFAULT_ERROR_STATUS)),
        message=str(parameters.get("message", DEFAULT_ERROR_MESSAGE)),
    )


BUILTIN_ACTIONS = {
    "log": _log_action,
    "rotate": lambda parameters: RotateAction(),
    "invalidate": lambda parameters: InvalidateAction(),
    "error": _error_action,
}
