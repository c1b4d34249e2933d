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
"""TokenValidator: accepts or rejects a request against the session tokens.

States per request::

    NOT_EVALUATED -> PROTECTED_CHECK -> MASTER_TOKEN_CHECK | PAGE_TOKEN_CHECK
                  -> ACCEPTED | REJECTED

A mismatch is an ordinary ``REJECTED`` outcome, never an exception. Any
unexpected error while validating also yields ``REJECTED``, so the guard
fails closed.
"""

from __future__ import annotations

import structlog

from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.config.provider import ConfigurationProvider
from csrfguard.session.ports import LogicalSession
from csrfguard.token.store import TokenStore, tokens_match
from csrfguard.validation.outcome import Reason, ValidationOutcome

logger = structlog.get_logger(__name__)


class TokenValidator:
    """Validates the token supplied with a request.

    On success with rotation enabled, the matched token is replaced so the
    next request needs the new value. On rejection the master token is
    always rotated, and any page token equal to the supplied value is
    rotated too, since it was exposed outside the page it belongs to.
    """

    def __init__(self, provider: ConfigurationProvider, store: TokenStore) -> None:
        self._provider = provider
        self._store = store

    def validate(
        self,
        session: LogicalSession | None,
        uri: str,
        method: str,
        supplied_token: str | None,
    ) -> ValidationOutcome:
        try:
            return self._validate(session, uri, method, supplied_token)
        except Exception:
            logger.exception("token_validation_failed", uri=uri, method=method)
            return ValidationOutcome.reject(Reason.INTERNAL_ERROR)

    def _validate(
        self,
        session: LogicalSession | None,
        uri: str,
        method: str,
        supplied_token: str | None,
    ) -> ValidationOutcome:
        configuration = self._provider.current()
        properties = configuration.properties
        if not properties.enabled:
            return ValidationOutcome.accept(Reason.DISABLED)

        protection = configuration.matcher.is_protected(uri, method)
        resource = protection.resource_identifier
        if not protection.is_protected:
            logger.debug("unprotected_resource", resource=resource, method=method)
            return ValidationOutcome.accept(Reason.UNPROTECTED, resource)

        logger.debug("protected_resource", resource=resource, method=method)
        if session is None:
            if not properties.validate_when_no_session_exists:
                return ValidationOutcome.accept(Reason.NO_SESSION_PERMITTED, resource)
            logger.warning("csrf_token_rejected", reason=Reason.NO_SESSION.name, resource=resource)
            return ValidationOutcome.reject(Reason.NO_SESSION, resource)

        with self._store.lock_for(session):
            if properties.token_per_page:
                return self._check_page_token(session, resource, supplied_token, properties)
            return self._check_master_token(session, resource, supplied_token, properties)

    def _check_master_token(
        self,
        session: LogicalSession,
        resource: str,
        supplied_token: str | None,
        properties: CsrfGuardProperties,
    ) -> ValidationOutcome:
        expected = self._store.ensure_master_token(session)
        if not supplied_token:
            return self._reject(session, resource, Reason.TOKEN_MISSING, supplied_token)
        if not tokens_match(supplied_token, expected):
            return self._reject(session, resource, Reason.TOKEN_MISMATCH, supplied_token)

        token = self._store.rotate_master_token(session) if properties.rotate else expected
        return ValidationOutcome.accept(Reason.TOKEN_VALID, resource, token)

    def _check_page_token(
        self,
        session: LogicalSession,
        resource: str,
        supplied_token: str | None,
        properties: CsrfGuardProperties,
    ) -> ValidationOutcome:
        if self._store.get_page_token(session, resource) is None:
            # No page token issued yet: the master token vouches for this first request.
            master = self._store.ensure_master_token(session)
            page_token = self._store.ensure_page_token(session, resource)
            if not supplied_token:
                return self._reject(session, resource, Reason.TOKEN_MISSING, supplied_token)
            if not tokens_match(supplied_token, master):
                return self._reject(session, resource, Reason.TOKEN_MISMATCH, supplied_token)
            if properties.rotate:
                self._store.rotate_master_token(session)
            return ValidationOutcome.accept(Reason.TOKEN_VALID, resource, page_token)

        expected = self._store.ensure_page_token(session, resource)
        if not supplied_token:
            return self._reject(session, resource, Reason.TOKEN_MISSING, supplied_token)
        if not tokens_match(supplied_token, expected):
            return self._reject(session, resource, Reason.TOKEN_MISMATCH, supplied_token)

        token = self._store.rotate_page_token(session, resource) if properties.rotate else expected
        return ValidationOutcome.accept(Reason.TOKEN_VALID, resource, token)

    def _reject(
        self,
        session: LogicalSession,
        resource: str,
        reason: Reason,
        supplied_token: str | None,
    ) -> ValidationOutcome:
        self._store.rotate_master_token(session)
        if supplied_token:
            self._store.regenerate_used_page_token(session, supplied_token, exclude=resource)
        logger.warning("csrf_token_rejected", reason=reason.name, resource=resource, session=session.key)
        return ValidationOutcome.reject(reason, resource)
