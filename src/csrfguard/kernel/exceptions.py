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
"""Unified exception hierarchy for CSRF Guard.

All guard exceptions inherit from CsrfGuardException, so the bootstrap can
catch one type to refuse activation on any configuration problem.

Categories:
- ConfigurationException: missing or invalid settings, fatal at startup
- TokenGenerationException: the PRNG failed while producing a token
- CsrfTokenMismatch: describes a rejected request to the rejection actions
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class CsrfGuardException(Exception):
    """Base exception for all CSRF Guard errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_CONFIG_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(CsrfGuardException):
    """A required property is missing or a configured value cannot be used."""


class PatternCompilationException(ConfigurationException):
    """A page rule could not be compiled (e.g. an invalid regular expression)."""


# =============================================================================
# Runtime Exceptions
# =============================================================================


class TokenGenerationException(CsrfGuardException):
    """The random source failed while generating a token value."""


class CsrfTokenMismatch(CsrfGuardException):
    """Describes why a protected request was rejected.

    Never raised across the validator boundary: the validator reports a
    ``REJECTED`` outcome, and this exception is only handed to the rejection
    actions so they can log or render it.
    """
