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
"""Tests for the CSRF guard exception hierarchy."""

from csrfguard.kernel.exceptions import (
    ConfigurationException,
    CsrfGuardException,
    CsrfTokenMismatch,
    PatternCompilationException,
    TokenGenerationException,
)


class TestCsrfGuardException:
    def test_basic_creation(self):
        exc = CsrfGuardException("something went wrong")
        assert str(exc) == "something went wrong"
        assert exc.code is None
        assert exc.context == {}

    def test_with_code_and_context(self):
        exc = CsrfGuardException("bad prng", code="CSRF_CONFIG_PRNG", context={"prng": "nope"})
        assert exc.code == "CSRF_CONFIG_PRNG"
        assert exc.context["prng"] == "nope"

    def test_context_not_shared_between_instances(self):
        exc = CsrfGuardException("a")
        exc.context["key"] = "value"
        assert CsrfGuardException("b").context == {}


class TestExceptionHierarchy:
    def test_configuration_is_guard_exception(self):
        assert issubclass(ConfigurationException, CsrfGuardException)

    def test_pattern_compilation_is_configuration(self):
        assert issubclass(PatternCompilationException, ConfigurationException)

    def test_token_generation_is_not_configuration(self):
        assert issubclass(TokenGenerationException, CsrfGuardException)
        assert not issubclass(TokenGenerationException, ConfigurationException)

    def test_mismatch_is_guard_exception(self):
        assert issubclass(CsrfTokenMismatch, CsrfGuardException)
