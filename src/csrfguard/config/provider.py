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
"""Configuration providers: static snapshots and interval-based reloading."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from csrfguard.config.compiled import CompiledConfiguration, compile_configuration
from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.core.config import Config
from csrfguard.kernel.exceptions import CsrfGuardException

logger = structlog.get_logger(__name__)

PropertiesLoader = Callable[[], CsrfGuardProperties]


@runtime_checkable
class ConfigurationProvider(Protocol):
    """Supplies the configuration snapshot to use for the current request."""

    def current(self) -> CompiledConfiguration: ...


class StaticConfigurationProvider:
    """Always returns the same snapshot."""

    def __init__(self, configuration: CompiledConfiguration) -> None:
        self._configuration = configuration

    @classmethod
    def of(cls, properties: CsrfGuardProperties | None = None) -> StaticConfigurationProvider:
        """Compile *properties* (defaults when omitted) into a provider."""
        return cls(compile_configuration(properties or CsrfGuardProperties()))

    @classmethod
    def from_config(cls, config: Config) -> StaticConfigurationProvider:
        return cls(compile_configuration(config.bind(CsrfGuardProperties)))

    def current(self) -> CompiledConfiguration:
        return self._configuration


class ReloadingConfigurationProvider:
    """Re-reads the configuration when the check interval has elapsed.

    The first load happens in the constructor and propagates any error, so
    the guard refuses to start on bad configuration. Later reloads that fail
    are logged and the previous snapshot stays active. Snapshots are swapped
    by reference; readers never observe a partially built one.

    Args:
        loader: Returns freshly loaded properties.
        interval: Seconds between update checks. ``None`` takes the value of
            ``seconds_between_update_checks`` from the loaded properties;
            ``0`` disables periodic checks (``reload()`` still works).
        clock: Monotonic time source.
    """

    def __init__(
        self,
        loader: PropertiesLoader,
        interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._clock = clock
        self._lock = threading.Lock()
        self._configuration = compile_configuration(loader())
        self._interval = (
            interval if interval is not None else self._configuration.properties.seconds_between_update_checks
        )
        self._checked_at = clock()
        self._generation = 1

    @classmethod
    def from_file(cls, path: str | Path, interval: float | None = None) -> ReloadingConfigurationProvider:
        """Reload ``csrfguard.*`` settings from a YAML or TOML file."""
        return cls(lambda: Config.from_file(path).bind(CsrfGuardProperties), interval=interval)

    @property
    def generation(self) -> int:
        """Number of snapshots built so far."""
        return self._generation

    def current(self) -> CompiledConfiguration:
        if self._interval > 0 and self._clock() - self._checked_at >= self._interval:
            self._reload_if_due()
        return self._configuration

    def reload(self) -> bool:
        """Reload now. Returns ``True`` if a new snapshot was installed."""
        with self._lock:
            return self._do_reload()

    def _reload_if_due(self) -> None:
        if not self._lock.acquire(blocking=False):
            # another thread is reloading; keep serving the current snapshot
            return
        try:
            if self._clock() - self._checked_at >= self._interval:
                self._do_reload()
        finally:
            self._lock.release()

    def _do_reload(self) -> bool:
        self._checked_at = self._clock()
        try:
            properties = self._loader()
            if properties == self._configuration.properties:
                return False
            configuration = compile_configuration(properties)
        except CsrfGuardException as exc:
            logger.error("configuration_reload_failed", error=str(exc), code=exc.code)
            return False
        except OSError as exc:
            logger.error("configuration_reload_failed", error=str(exc))
            return False
        except Exception:
            logger.exception("configuration_reload_failed")
            return False
        self._configuration = configuration
        self._generation += 1
        logger.info("configuration_reloaded", generation=self._generation)
        return True
