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
"""CsrfGuardProperties: typed settings bound from ``csrfguard.*``."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from csrfguard.core.config import config_properties


class ActionSpec(BaseModel):
    """One configured rejection action: a registry name plus its parameters."""

    name: str = Field(min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)


def _default_actions() -> list[ActionSpec]:
    return [ActionSpec(name="log"), ActionSpec(name="error")]


def _split(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@config_properties(prefix="csrfguard")
class CsrfGuardProperties(BaseModel):
    """Configuration for the CSRF guard (csrfguard.*).

    List settings also accept a comma-separated string, which is how they
    arrive from environment variables.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    enabled: bool = True
    token_name: str = Field(default="OWASP-CSRFGUARD", min_length=1)
    token_length: int = Field(default=32, gt=0, le=4096)
    session_key: str = Field(default="OWASP_CSRFGUARD_KEY", min_length=1)
    page_tokens_key: str = Field(default="Owasp_CsrfGuard_Pages_Tokens", min_length=1)
    prng: str = Field(default="system", min_length=1)
    prng_seed: str | None = None

    rotate: bool = False
    token_per_page: bool = False
    token_per_page_precreate: bool = False
    validate_when_no_session_exists: bool = True
    protect_all: bool = True
    ajax: bool = False

    protected_pages: list[str] = Field(default_factory=list)
    unprotected_pages: list[str] = Field(default_factory=list)
    protected_methods: list[str] = Field(default_factory=list)
    unprotected_methods: list[str] = Field(default_factory=list)
    unprotected_extensions: list[str] = Field(default_factory=list)

    actions: list[ActionSpec] = Field(default_factory=_default_actions)
    seconds_between_update_checks: float = Field(default=0, ge=0)

    @field_validator(
        "protected_pages",
        "unprotected_pages",
        "protected_methods",
        "unprotected_methods",
        "unprotected_extensions",
        mode="before",
    )
    @classmethod
    def _split_comma_separated(cls, value: Any) -> Any:
        return _split(value)

    @field_validator("protected_methods", "unprotected_methods")
    @classmethod
    def _upper_methods(cls, value: list[str]) -> list[str]:
        return [method.upper() for method in value]

    @field_validator("unprotected_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        return [ext.lstrip(".").lower() for ext in value]

    @field_validator("actions", mode="before")
    @classmethod
    def _names_to_specs(cls, value: Any) -> Any:
        value = _split(value)
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value
