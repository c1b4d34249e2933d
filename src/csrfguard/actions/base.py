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
"""Rejection action port and the context handed to each action."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from csrfguard.kernel.exceptions import CsrfTokenMismatch

if TYPE_CHECKING:
    from csrfguard.session.ports import LogicalSession
    from csrfguard.token.store import TokenStore
    from csrfguard.validation.outcome import ValidationOutcome

DEFAULT_ERROR_STATUS = 403
DEFAULT_ERROR_MESSAGE = "Security violation."


@dataclass
class RejectionResponse:
    """What the filter layer should answer; actions may adjust it."""

    status_code: int = DEFAULT_ERROR_STATUS
    message: str = DEFAULT_ERROR_MESSAGE


@dataclass
class RejectionContext:
    """Everything a rejection action may inspect or act on."""

    outcome: ValidationOutcome
    error: CsrfTokenMismatch
    store: TokenStore
    method: str
    uri: str
    session: LogicalSession | None = None
    remote_ip: str | None = None
    user: str | None = None
    response: RejectionResponse = field(default_factory=RejectionResponse)


@runtime_checkable
class RejectionAction(Protocol):
    """Executed, in configuration order, after a request was rejected."""

    def execute(self, context: RejectionContext) -> None: ...
