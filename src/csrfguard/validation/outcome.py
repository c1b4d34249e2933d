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
"""Structured validation outcomes reported to the filter layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ValidationStatus(enum.Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Reason(enum.Enum):
    """Why a request was accepted or rejected."""

    DISABLED = "guard disabled"
    UNPROTECTED = "resource is not protected"
    NO_SESSION_PERMITTED = "no session and validation without a session is disabled"
    TOKEN_VALID = "token matched"
    TOKEN_MISSING = "required token is missing from the request"
    TOKEN_MISMATCH = "token does not match the expected value"
    NO_SESSION = "no session exists to hold the expected token"
    INTERNAL_ERROR = "token validation failed internally"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of validating one request.

    Attributes:
        status: ``ACCEPTED`` or ``REJECTED``.
        reason: Detail behind the status.
        resource_identifier: Identifier the request was checked against.
        token: Token the client must send next for this resource, when known.
            After a rotation on success this is the new value.
    """

    status: ValidationStatus
    reason: Reason
    resource_identifier: str | None = None
    token: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status is ValidationStatus.ACCEPTED

    @property
    def rejected(self) -> bool:
        return self.status is ValidationStatus.REJECTED

    @classmethod
    def accept(cls, reason: Reason, resource_identifier: str | None = None, token: str | None = None) -> ValidationOutcome:
        return cls(ValidationStatus.ACCEPTED, reason, resource_identifier, token)

    @classmethod
    def reject(cls, reason: Reason, resource_identifier: str | None = None) -> ValidationOutcome:
        return cls(ValidationStatus.REJECTED, reason, resource_identifier)
