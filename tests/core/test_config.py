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
"""Tests for Config loading, env overrides and pydantic binding."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import BaseModel

from csrfguard.config.properties import CsrfGuardProperties
from csrfguard.core.config import Config, config_properties
from csrfguard.kernel.exceptions import ConfigurationException


class Undecorated(BaseModel):
    value: str = "nope"


class TestConfigGet:
    def test_dot_notation(self):
        config = Config({"csrfguard": {"token_name": "X-CSRF"}})
        assert config.get("csrfguard.token_name") == "X-CSRF"

    def test_missing_key_returns_default(self):
        assert Config({}).get("csrfguard.token_name", "fallback") == "fallback"

    def test_false_value_is_returned(self):
        assert Config({"csrfguard": {"rotate": False}}).get("csrfguard.rotate", True) is False

    def test_env_var_overrides_file_value(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CSRFGUARD_TOKEN_LENGTH", "64")
        config = Config({"csrfguard": {"token_length": 32}})
        assert config.get("csrfguard.token_length") == "64"

    def test_placeholder_with_default(self):
        config = Config({"csrfguard": {"token_name": "${CSRFGUARD_TEST_UNSET_NAME:X-TOKEN}"}})
        assert config.get("csrfguard.token_name") == "X-TOKEN"

    def test_placeholder_from_config(self):
        config = Config({"app": {"name": "shop"}, "csrfguard": {"token_name": "${app.name}-csrf"}})
        assert config.get("csrfguard.token_name") == "shop-csrf"

    def test_unresolvable_placeholder_raises(self):
        config = Config({"csrfguard": {"token_name": "${CSRFGUARD_TEST_UNSET_NAME}"}})
        with pytest.raises(ConfigurationException):
            config.get("csrfguard.token_name")

    def test_env_key_mapping(self):
        assert Config.env_key("csrfguard.token-per-page") == "CSRFGUARD_TOKEN_PER_PAGE"


class TestConfigSources:
    def test_from_sources_loads_packaged_defaults(self, tmp_path: Path):
        config = Config.from_sources(tmp_path)
        assert config.get("csrfguard.token_name") == "OWASP-CSRFGUARD"
        assert "csrfguard-defaults.yaml (packaged defaults)" in config.loaded_sources

    def test_project_file_overrides_defaults(self, tmp_path: Path):
        (tmp_path / "csrfguard.yaml").write_text("csrfguard:\n  token_per_page: true\n")
        config = Config.from_sources(tmp_path)
        assert config.get("csrfguard.token_per_page") is True
        assert config.get("csrfguard.token_length") == 32

    def test_profile_overlay(self, tmp_path: Path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "csrfguard.yaml").write_text("csrfguard:\n  rotate: false\n")
        (tmp_path / "csrfguard-prod.yaml").write_text("csrfguard:\n  rotate: true\n")
        config = Config.from_sources(tmp_path, active_profiles=["prod"])
        assert config.get("csrfguard.rotate") is True

    def test_from_file_toml(self, tmp_path: Path):
        path = tmp_path / "guard.toml"
        path.write_text('[csrfguard]\ntoken_name = "X-TOML"\nunprotected_extensions = ["png", "css"]\n')
        config = Config.from_file(path)
        assert config.get("csrfguard.token_name") == "X-TOML"
        assert config.get("csrfguard.unprotected_extensions") == ["png", "css"]

    def test_from_file_missing_raises(self, tmp_path: Path):
        with pytest.raises(ConfigurationException):
            Config.from_file(tmp_path / "missing.yaml")

    def test_from_file_unparseable_raises(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("csrfguard: [unclosed\n")
        with pytest.raises(ConfigurationException):
            Config.from_file(path)

    def test_from_file_invalid_utf8_raises(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_bytes(b"csrfguard:\n  token_name: \xff\xfe\n")
        with pytest.raises(ConfigurationException) as exc_info:
            Config.from_file(path)
        assert exc_info.value.code == "CSRF_CONFIG_PARSE"


class TestConfigBind:
    def test_bind_defaults(self, tmp_path: Path):
        props = Config.from_sources(tmp_path).bind(CsrfGuardProperties)
        assert props.token_name == "OWASP-CSRFGUARD"
        assert props.token_length == 32
        assert props.session_key == "OWASP_CSRFGUARD_KEY"
        assert props.validate_when_no_session_exists is True
        assert [a.name for a in props.actions] == ["log", "error"]

    def test_bind_env_comma_separated_list(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CSRFGUARD_UNPROTECTED_METHODS", "get, head")
        props = Config({}).bind(CsrfGuardProperties)
        assert props.unprotected_methods == ["GET", "HEAD"]

    def test_bind_env_boolean(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CSRFGUARD_TOKEN_PER_PAGE", "true")
        assert Config({}).bind(CsrfGuardProperties).token_per_page is True

    def test_bind_invalid_value_raises(self):
        config = Config({"csrfguard": {"token_length": 0}})
        with pytest.raises(ConfigurationException, match="CsrfGuardProperties"):
            config.bind(CsrfGuardProperties)

    def test_bind_empty_token_name_raises(self):
        with pytest.raises(ConfigurationException):
            Config({"csrfguard": {"token_name": ""}}).bind(CsrfGuardProperties)

    def test_bind_undecorated_raises(self):
        with pytest.raises(ConfigurationException):
            Config({}).bind(Undecorated)

    def test_decorator_records_prefix(self):
        @config_properties(prefix="myapp.csrf")
        class Custom(BaseModel):
            flag: bool = False

        assert Config({"myapp": {"csrf": {"flag": True}}}).bind(Custom).flag is True
