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
"""Compiled configuration snapshot shared by all requests of one generation."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from csrfguard.actions.base import RejectionAction
from csrfguard.actions.registry import create_action
from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.matching.matcher import PageMatcher, ProtectionPolicy
from csrfguard.token.generator import RandomTokenGenerator, create_prng

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CompiledConfiguration:
    """Immutable snapshot: settings, compiled page rules, generator and actions.

    A reload builds a new snapshot; existing snapshots are never mutated.
    """

    properties: CsrfGuardProperties
    matcher: PageMatcher
    generator: RandomTokenGenerator
    actions: tuple[RejectionAction, ...]

    @property
    def policy(self) -> ProtectionPolicy:
        return self.matcher.policy


def compile_configuration(properties: CsrfGuardProperties) -> CompiledConfiguration:
    """Compile *properties* into a snapshot.

    Raises:
        ConfigurationException: On an unknown PRNG or action.
        PatternCompilationException: On an invalid page pattern.
    """
    policy = ProtectionPolicy.compile(
        protected_pages=properties.protected_pages,
        unprotected_pages=properties.unprotected_pages,
        protected_methods=properties.protected_methods,
        unprotected_methods=properties.unprotected_methods,
        unprotected_extensions=properties.unprotected_extensions,
        protect_all=properties.protect_all,
    )
    if policy.protected_methods & policy.unprotected_methods:
        logger.warning(
            "method_listed_as_protected_and_unprotected",
            methods=sorted(policy.protected_methods & policy.unprotected_methods),
        )
    generator = RandomTokenGenerator(create_prng(properties.prng, properties.prng_seed), properties.token_length)
    actions = tuple(create_action(spec.name, spec.parameters) for spec in properties.actions)

    logger.debug(
        "configuration_compiled",
        protected_pages=len(policy.protected_pages),
        unprotected_pages=len(policy.unprotected_pages),
        token_per_page=properties.token_per_page,
        rotate=properties.rotate,
    )
    return CompiledConfiguration(properties, PageMatcher(policy), generator, actions)
