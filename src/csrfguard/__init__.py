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
"""CSRF Guard: session-bound CSRF token lifecycle and validation."""

from csrfguard.config import (
    CsrfGuardProperties,
    ReloadingConfigurationProvider,
    StaticConfigurationProvider,
)
from csrfguard.core.config import Config
from csrfguard.guard import CsrfGuard
from csrfguard.matching import PageMatcher, ProtectionPolicy, ProtectionResult
from csrfguard.session import AttributeLogicalSession, LogicalSession, SessionAttributes
from csrfguard.token import RandomTokenGenerator, TokenStore
from csrfguard.validation import Reason, TokenValidator, ValidationOutcome, ValidationStatus

__version__ = "1.0.0"

__all__ = [
    "AttributeLogicalSession",
    "Config",
    "CsrfGuard",
    "CsrfGuardProperties",
    "LogicalSession",
    "PageMatcher",
    "ProtectionPolicy",
    "ProtectionResult",
    "RandomTokenGenerator",
    "Reason",
    "ReloadingConfigurationProvider",
    "SessionAttributes",
    "StaticConfigurationProvider",
    "TokenStore",
    "TokenValidator",
    "ValidationOutcome",
    "ValidationStatus",
    "__version__",
]
