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
"""Session ports: the narrow views the guard has of a host session."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AttributeBag(Protocol):
    """Key-value storage with the lifetime of one user session.

    Owned by the host web framework; the guard never creates or destroys it.
    """

    @property
    def id(self) -> str: ...

    def get_attribute(self, name: str) -> Any | None: ...

    def set_attribute(self, name: str, value: Any) -> None: ...

    def remove_attribute(self, name: str) -> None: ...

    def invalidate(self) -> None: ...


@runtime_checkable
class LogicalSession(Protocol):
    """Token-only view of a session.

    ``key`` identifies the session for per-session locking; the remaining
    methods read and write the master token and the page token map.
    """

    @property
    def key(self) -> str: ...

    @property
    def tokens_generated(self) -> bool: ...

    def mark_tokens_generated(self) -> None: ...

    def get_master_token(self) -> str | None: ...

    def set_master_token(self, value: str) -> None: ...

    def get_page_tokens(self) -> dict[str, str]: ...

    def set_page_tokens(self, tokens: dict[str, str]) -> None: ...

    def invalidate(self) -> None: ...
