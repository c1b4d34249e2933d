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
"""AttributeLogicalSession: LogicalSession stored in a host attribute bag."""

from __future__ import annotations

from csrfguard.session.ports import AttributeBag

TOKENS_GENERATED_ATTRIBUTE = "Owasp_CsrfGuard_Tokens_Generated"


class AttributeLogicalSession:
    """Stores the master token and page token map as two session attributes.

    The page token map is always replaced as a whole, never mutated in
    place, so concurrent readers see either the old or the new map.
    """

    def __init__(self, bag: AttributeBag, session_key: str, page_tokens_key: str) -> None:
        self._bag = bag
        self._session_key = session_key
        self._page_tokens_key = page_tokens_key

    @property
    def key(self) -> str:
        return self._bag.id

    @property
    def bag(self) -> AttributeBag:
        return self._bag

    @property
    def tokens_generated(self) -> bool:
        return bool(self._bag.get_attribute(TOKENS_GENERATED_ATTRIBUTE))

    def mark_tokens_generated(self) -> None:
        self._bag.set_attribute(TOKENS_GENERATED_ATTRIBUTE, True)

    def get_master_token(self) -> str | None:
        value = self._bag.get_attribute(self._session_key)
        return value if isinstance(value, str) else None

    def set_master_token(self, value: str) -> None:
        self._bag.set_attribute(self._session_key, value)

    def get_page_tokens(self) -> dict[str, str]:
        tokens = self._bag.get_attribute(self._page_tokens_key)
        return dict(tokens) if isinstance(tokens, dict) else {}

    def set_page_tokens(self, tokens: dict[str, str]) -> None:
        self._bag.set_attribute(self._page_tokens_key, dict(tokens))

    def invalidate(self) -> None:
        self._bag.remove_attribute(self._session_key)
        self._bag.remove_attribute(self._page_tokens_key)
        self._bag.remove_attribute(TOKENS_GENERATED_ATTRIBUTE)
        self._bag.invalidate()

    def __repr__(self) -> str:
        return f"AttributeLogicalSession(key={self.key!r})"
