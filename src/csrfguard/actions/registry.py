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
"""Registry mapping action names to factories, resolved at configuration load."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from csrfguard.actions.base import RejectionAction, RejectionContext
from csrfguard.actions.builtin import BUILTIN_ACTIONS
from csrfguard.kernel.exceptions import ConfigurationException

logger = structlog.get_logger(__name__)

ActionFactory = Callable[[Mapping[str, Any]], RejectionAction]

_ACTION_REGISTRY: dict[str, ActionFactory] = dict(BUILTIN_ACTIONS)


def register_action(name: str, factory: ActionFactory) -> None:
    """Register a rejection action factory under *name*."""
    _ACTION_REGISTRY[name.lower()] = factory


def create_action(name: str, parameters: Mapping[str, Any] | None = None) -> RejectionAction:
    """Instantiate the action registered as *name*.

    Raises:
        ConfigurationException: If *name* is unknown or its parameters are invalid.
    """
    factory = _ACTION_REGISTRY.get(name.lower())
    if factory is None:
        raise ConfigurationException(
            f"Unknown rejection action '{name}'. Available: {sorted(_ACTION_REGISTRY)}",
            code="CSRF_CONFIG_ACTION",
            context={"action": name},
        )
    try:
        return factory(parameters or {})
    except (TypeError, ValueError) as exc:
        raise ConfigurationException(
            f"Invalid parameters for rejection action '{name}': {exc}",
            code="CSRF_CONFIG_ACTION",
            context={"action": name},
        ) from exc


def run_actions(actions: tuple[RejectionAction, ...], context: RejectionContext) -> None:
    """Run every action; a failing action is logged and the rest still run."""
    for action in actions:
        try:
            action.execute(context)
        except Exception:
            logger.exception("rejection_action_failed", action=type(action).__name__)
