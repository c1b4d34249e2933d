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
"""CsrfGuard: explicitly constructed entry point wiring the guard together.

The application bootstrap builds one guard from a configuration provider
and hands it to the web layer; there is no process-wide instance.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from csrfguard.actions.base import RejectionContext, RejectionResponse
from csrfguard.actions.registry import run_actions
from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.config.provider import (
    ConfigurationProvider,
    ReloadingConfigurationProvider,
    StaticConfigurationProvider,
)
from csrfguard.core.config import Config
from csrfguard.kernel.exceptions import CsrfTokenMismatch
from csrfguard.matching.matcher import ProtectionResult
from csrfguard.session.logical import AttributeLogicalSession
from csrfguard.session.ports import AttributeBag, LogicalSession
from csrfguard.token.store import TokenStore
from csrfguard.validation.outcome import ValidationOutcome
from csrfguard.validation.validator import TokenValidator

logger = structlog.get_logger(__name__)


class CsrfGuard:
    """Token lifecycle and validation for one application.

    Args:
        provider: Source of the active configuration snapshot.
    """

    def __init__(self, provider: ConfigurationProvider) -> None:
        self._provider = provider
        self._store = TokenStore(self._generate_token)
        self._validator = TokenValidator(provider, self._store)

    @classmethod
    def from_properties(cls, properties: CsrfGuardProperties | None = None) -> CsrfGuard:
        return cls(StaticConfigurationProvider.of(properties))

    @classmethod
    def from_config(cls, config: Config) -> CsrfGuard:
        return cls(StaticConfigurationProvider.from_config(config))

    @classmethod
    def from_file(cls, path: str | Path, interval: float | None = None) -> CsrfGuard:
        """Build a guard that re-reads *path* every ``interval`` seconds."""
        return cls(ReloadingConfigurationProvider.from_file(path, interval=interval))

    @property
    def properties(self) -> CsrfGuardProperties:
        return self._provider.current().properties

    @property
    def store(self) -> TokenStore:
        return self._store

    @property
    def validator(self) -> TokenValidator:
        return self._validator

    def _generate_token(self) -> str:
        return self._provider.current().generator.generate()

    def session(self, bag: AttributeBag) -> AttributeLogicalSession:
        """Wrap a host session in the logical session view."""
        properties = self.properties
        return AttributeLogicalSession(bag, properties.session_key, properties.page_tokens_key)

    def is_protected(self, uri: str, method: str) -> ProtectionResult:
        return self._provider.current().matcher.is_protected(uri, method)

    def validate(
        self,
        session: LogicalSession | None,
        uri: str,
        method: str,
        supplied_token: str | None,
    ) -> ValidationOutcome:
        return self._validator.validate(session, uri, method, supplied_token)

    def on_session_created(self, session: LogicalSession) -> None:
        """Create the session's tokens up front.

        With page-token precreation enabled every protected page rule gets
        its token now; otherwise only the master token is created.
        """
        configuration = self._provider.current()
        properties = configuration.properties
        if properties.token_per_page and properties.token_per_page_precreate:
            if not session.tokens_generated:
                self._store.precreate_all_page_tokens(session, configuration.policy.protected_resource_identifiers)
        else:
            self._store.ensure_master_token(session)

    def on_session_destroyed(self, session: LogicalSession) -> None:
        self._store.discard(session)

    def token_for(self, session: LogicalSession, uri: str, method: str = "POST") -> str:
        """Return the token a form or link targeting *uri* must carry."""
        if self.properties.token_per_page:
            protection = self.is_protected(uri, method)
            if protection.is_protected:
                return self._store.ensure_page_token(session, protection.resource_identifier)
        return self._store.ensure_master_token(session)

    def handle_rejection(
        self,
        outcome: ValidationOutcome,
        session: LogicalSession | None,
        uri: str,
        method: str,
        remote_ip: str | None = None,
        user: str | None = None,
    ) -> RejectionResponse:
        """Run the configured rejection actions and return the response to send."""
        context = RejectionContext(
            outcome=outcome,
            error=CsrfTokenMismatch(outcome.reason.value, code=outcome.reason.name),
            store=self._store,
            method=method,
            uri=uri,
            session=session,
            remote_ip=remote_ip,
            user=user,
        )
        run_actions(self._provider.current().actions, context)
        return context.response
