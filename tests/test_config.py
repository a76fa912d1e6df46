"""
Configuration Tests

YAML loading, environment binding, validation and runtime overrides.

Run with: pytest tests/test_config.py -v
"""

import pytest
import yaml

from blankart.config import (
    BlankArtConfig,
    ConfigError,
    ConfigManager,
    ConfigValidationError,
    ConfigValue,
    get_config,
    get_config_manager,
)


class TestConfigValue:
    """Tests for a single configuration value."""

    def test_default(self):
        assert ConfigValue(default=3).get() == 3

    def test_override(self):
        value = ConfigValue(default=3)
        value.set(4)
        assert value.get() == 4
        value.reset()
        assert value.get() == 3

    def test_env_wins(self, monkeypatch):
        value = ConfigValue(default=3, env_var="BLANKART_TEST_VALUE")
        value.set(4)
        monkeypatch.setenv("BLANKART_TEST_VALUE", "9")
        assert value.get() == 9

    def test_env_bool(self, monkeypatch):
        value = ConfigValue(default=False, env_var="BLANKART_TEST_FLAG")
        monkeypatch.setenv("BLANKART_TEST_FLAG", "yes")
        assert value.get() is True

    def test_env_bad_integer(self, monkeypatch):
        value = ConfigValue(default=3, env_var="BLANKART_TEST_VALUE")
        monkeypatch.setenv("BLANKART_TEST_VALUE", "three")
        with pytest.raises(ConfigValidationError):
            value.get()

    def test_env_value_is_validated(self, monkeypatch):
        value = ConfigValue(default=3, env_var="BLANKART_TEST_VALUE", validator=lambda x: x > 0)
        monkeypatch.setenv("BLANKART_TEST_VALUE", "0")
        with pytest.raises(ConfigValidationError, match="BLANKART_TEST_VALUE"):
            value.get()

    def test_validator(self):
        value = ConfigValue(default=1, validator=lambda x: x > 0)
        with pytest.raises(ConfigValidationError):
            value.set(0)
        with pytest.raises(ConfigValidationError):
            value.set("ten")
        assert value.get() == 1

    def test_on_change(self):
        value = ConfigValue(default=1)
        seen = []
        value.on_change(lambda old, new: seen.append((old, new)))
        value.set(2)
        value.set(3)
        assert seen == [(None, 2), (2, 3)]

    def test_empty_string_override_is_kept(self):
        value = ConfigValue(default=".json")
        value.set("")
        assert value.get() == ""


class TestConfigManager:
    """Tests for the configuration manager."""

    def test_singleton(self):
        assert ConfigManager() is get_config_manager()
        assert get_config() is get_config_manager().config

    def test_defaults(self):
        cfg = get_config()
        assert cfg.signing.domain_name.get() == "BlankNFT"
        assert cfg.signing.domain_version.get() == "1"
        assert cfg.signing.chain_id.get() == 1337
        assert cfg.engine.default_member_cap.get() == 5
        assert cfg.metadata.uri_suffix.get() == ".json"
        assert get_config_manager().validate() == []

    def test_set_and_get_by_path(self):
        manager = get_config_manager()
        manager.set("signing.chain_id", 31337)
        assert manager.get("signing.chain_id") == 31337
        assert get_config().signing.chain_id.get() == 31337

    def test_invalid_path(self):
        manager = get_config_manager()
        with pytest.raises(ConfigError):
            manager.get("signing.nope")
        with pytest.raises(ConfigError):
            manager.set("signing", 1)

    def test_set_validates(self):
        with pytest.raises(ConfigValidationError):
            get_config_manager().set("metadata.uri_suffix", "a/b")

    def test_reset(self):
        manager = get_config_manager()
        manager.set("engine.default_member_cap", 2)
        manager.reset()
        assert get_config().engine.default_member_cap.get() == 5

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BLANKART_CHAIN_ID", "5")
        monkeypatch.setenv("BLANKART_URI_SUFFIX", "")
        assert get_config().signing.chain_id.get() == 5
        assert get_config().metadata.uri_suffix.get() == ""

    def test_validate_reports_bad_env(self, monkeypatch):
        monkeypatch.setenv("BLANKART_CHAIN_ID", "mainnet")
        errors = get_config_manager().validate()
        assert len(errors) == 1
        assert errors[0].startswith("signing.chain_id")

    def test_validate_reports_out_of_range_env(self, monkeypatch):
        monkeypatch.setenv("BLANKART_MEMBER_CAP", "-1")
        errors = get_config_manager().validate()
        assert len(errors) == 1
        assert errors[0].startswith("engine.default_member_cap")

    def test_no_per_transaction_key(self):
        with pytest.raises(ConfigError):
            get_config_manager().get("engine.max_per_transaction")

    def test_to_yaml(self):
        data = yaml.safe_load(BlankArtConfig().to_yaml())
        assert data["signing"]["domain_name"] == "BlankNFT"
        assert data["metadata"]["uri_suffix"] == ".json"
        assert set(data) == {"signing", "engine", "metadata", "observability"}


class TestConfigFiles:
    """Tests for YAML configuration files."""

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "blankart.yaml"
        path.write_text(
            "signing:\n"
            "  chain_id: 31337\n"
            "engine:\n"
            "  default_member_cap: 2\n"
            "metadata:\n"
            "  uri_suffix: ''\n",
            encoding="utf-8",
        )
        get_config_manager().load_from_file(path)
        cfg = get_config()
        assert cfg.signing.chain_id.get() == 31337
        assert cfg.engine.default_member_cap.get() == 2
        assert cfg.metadata.uri_suffix.get() == ""

    def test_empty_file(self, tmp_path):
        path = tmp_path / "blankart.yaml"
        path.write_text("", encoding="utf-8")
        get_config_manager().load_from_file(path)
        assert get_config().signing.chain_id.get() == 1337

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(tmp_path / "absent.yaml")

    @pytest.mark.parametrize("text", [
        "signing: [unclosed\n",
        "- a\n- b\n",
        "signing:\n  unknown_key: 1\n",
        "nosuchsection:\n  a: 1\n",
        "signing: 5\n",
        "engine:\n  default_member_cap: -1\n",
    ])
    def test_bad_files(self, tmp_path, text):
        path = tmp_path / "blankart.yaml"
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_load_defaults_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "blankart.yaml").write_text("engine:\n  symbol: TEST\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        get_config_manager().load_defaults()
        assert get_config().engine.symbol.get() == "TEST"

    def test_load_defaults_skips_broken_file(self, tmp_path, monkeypatch):
        (tmp_path / "blankart.yaml").write_text("- not a mapping\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        get_config_manager().load_defaults()
        assert get_config().engine.symbol.get() == "BLANK"

    def test_reload(self, tmp_path):
        path = tmp_path / "blankart.yaml"
        path.write_text("engine:\n  name: One\n", encoding="utf-8")
        manager = get_config_manager()
        manager.load_from_file(path)
        path.write_text("engine:\n  name: Two\n", encoding="utf-8")
        manager.reload()
        assert get_config().engine.name.get() == "Two"
