"""Tests for voucher_config (YAML loading, validation, checksum)."""

import pytest
import yaml

from voucher_config import (
    DEFAULT_CONFIG_PATH,
    VoucherConfig,
    compute_checksum,
    get_active_config,
    load_config,
    parse_config,
)


class TestDefaultSet:

    def test_default_set_loads(self):
        config = get_active_config()

        assert isinstance(config, VoucherConfig)
        assert config.materialize.max_workers == 8
        assert config.materialize.code_attempts == 5
        assert config.dispatch.send_timeout_seconds == 10
        assert config.dispatch.max_attempts == 10
        assert config.database.url.startswith("sqlite")
        assert len(config.checksum) == 64

    def test_trace_logged(self, captured_logs):
        config = get_active_config(DEFAULT_CONFIG_PATH)

        record = next(r for r in captured_logs() if r["message"] == "VOUCHER_CONFIG_TRACE")
        assert record["checksum"] == config.checksum


class TestParseConfig:

    def test_empty_document_uses_defaults(self):
        config = parse_config({})
        assert config.dispatch.max_workers == 8
        assert config.storage.root == "./artifacts"

    def test_partial_section(self):
        config = parse_config({"dispatch": {"max_workers": 2}})
        assert config.dispatch.max_workers == 2
        assert config.dispatch.send_timeout_seconds == 10.0

    def test_null_max_attempts_is_unbounded(self):
        assert parse_config({"dispatch": {"max_attempts": None}}).dispatch.max_attempts is None

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown configuration sections"):
            parse_config({"scheduler": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys in 'dispatch'"):
            parse_config({"dispatch": {"workers": 2}})

    @pytest.mark.parametrize("data", [
        {"materialize": {"max_workers": 0}},
        {"materialize": {"code_attempts": 0}},
        {"dispatch": {"max_workers": -1}},
        {"dispatch": {"send_timeout_seconds": 0}},
        {"dispatch": {"max_attempts": 0}},
        {"logging": {"level": "LOUD"}},
    ])
    def test_out_of_range_values(self, data):
        with pytest.raises(ValueError):
            parse_config(data)

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError):
            parse_config({"dispatch": [1, 2]})


class TestChecksum:

    def test_key_order_does_not_matter(self):
        a = {"dispatch": {"max_workers": 2, "max_attempts": 3}}
        b = {"dispatch": {"max_attempts": 3, "max_workers": 2}}
        assert compute_checksum(a) == compute_checksum(b)

    def test_value_change_changes_checksum(self):
        assert compute_checksum({"dispatch": {"max_workers": 2}}) != compute_checksum(
            {"dispatch": {"max_workers": 3}}
        )


class TestLoadConfig:

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({"dispatch": {"max_workers": 3, "max_attempts": None}}))

        config = load_config(path)

        assert config.dispatch.max_workers == 3
        assert config.dispatch.max_attempts is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError):
            load_config(path)
