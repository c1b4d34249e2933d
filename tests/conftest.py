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
"""Shared fixtures for the CSRF guard test-suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from csrfguard import CsrfGuard, CsrfGuardProperties, SessionAttributes
from csrfguard.session.logical import AttributeLogicalSession


@pytest.fixture
def make_guard() -> Callable[..., CsrfGuard]:
    """Build a guard from keyword overrides of :class:`CsrfGuardProperties`."""

    def _make(**overrides: Any) -> CsrfGuard:
        return CsrfGuard.from_properties(CsrfGuardProperties(**overrides))

    return _make


@pytest.fixture
def bag() -> SessionAttributes:
    return SessionAttributes()


@pytest.fixture
def logical_session(bag: SessionAttributes) -> AttributeLogicalSession:
    return AttributeLogicalSession(bag, "OWASP_CSRFGUARD_KEY", "Owasp_CsrfGuard_Pages_Tokens")
