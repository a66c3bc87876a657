import argparse
import json

import pytest

from kleidi_config import (
    ConfigError,
    KleidiConfig,
    ScanSettings,
    SharedConfigManager,
    decode_prefix,
    parse_duration,
    split_endpoints,
)
from remediation import Mode


def _args(**overrides):
    values = dict(
        endpoints="127.0.0.1:2379",
        cacert="",
        cert="",
        key="",
        prefix="",
        timeout="5s",
        debug=False,
        remove=False,
        dry=False,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("5s", 5.0),
            ("500ms", 0.5),
            ("1m30s", 90.0),
            ("2.5s", 2.5),
            ("1h", 3600.0),
            ("10", 10.0),
            ("250us", 0.00025),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "abc", "5x", "s", "5s garbage", "0s", "-1", "nan"])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_duration(value)


class TestDecodePrefix:
    def test_empty_matches_all(self):
        assert decode_prefix("") == b""

    def test_hex(self):
        assert decode_prefix("2f6100ff") == b"/a\x00\xff"

    @pytest.mark.parametrize("value", ["zz", "abc", "0x12"])
    def test_invalid_hex_is_fatal(self, value):
        with pytest.raises(ConfigError, match="Failed to decode hex prefix"):
            decode_prefix(value)


def test_split_endpoints():
    assert split_endpoints(" a:1, ,b:2 ,") == ["a:1", "b:2"]
    assert split_endpoints("") == []
    assert split_endpoints(None) == []


class TestScanSettings:
    def test_defaults(self):
        settings = ScanSettings.from_args(_args())

        assert settings.endpoints == ["127.0.0.1:2379"]
        assert settings.timeout == 5.0
        assert settings.prefix == b""
        assert settings.mode is Mode.REPORT_ONLY
        assert not settings.tls_requested

    def test_missing_endpoints_is_fatal(self):
        with pytest.raises(ConfigError, match="Missing etcd endpoints"):
            ScanSettings.from_args(_args(endpoints=""))

    def test_mode_and_prefix(self):
        settings = ScanSettings.from_args(_args(prefix="ff", remove=True, dry=True))

        assert settings.prefix == b"\xff"
        assert settings.mode is Mode.DRY_RUN

    def test_tls_needs_all_three_files(self):
        assert not ScanSettings.from_args(_args(cacert="ca.pem", cert="c.pem")).tls_requested
        assert ScanSettings.from_args(_args(cacert="ca.pem", cert="c.pem", key="k.pem")).tls_requested


class TestSharedConfigManager:
    def test_load_missing_returns_defaults(self, config_manager):
        config = config_manager.load()

        assert config.last_run is None
        assert config.stats["total_runs"] == 0

    def test_record_and_reload(self, config_manager):
        config = config_manager.load()
        config.record_run(scanned=10, binary=3, deleted=2)
        config.record_run(scanned=5, binary=1, deleted=0)
        config_manager.save(config)

        reloaded = config_manager.load()
        assert reloaded.stats == {"total_runs": 2, "total_scanned": 15, "total_binary": 4, "total_deleted": 2}
        assert reloaded.last_run is not None

    def test_corrupted_file_loads_defaults(self, config_manager):
        config_manager.kleidi_dir.mkdir(parents=True)
        config_manager.config_file.write_text("{not json")

        assert config_manager.load() == KleidiConfig()

    def test_reset(self, config_manager):
        config_manager.save(KleidiConfig())
        config_manager.reset()

        assert not config_manager.config_file.exists()

    def test_home_override_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KLEIDI_HOME", str(tmp_path / "custom"))
        manager = SharedConfigManager()
        manager.save(KleidiConfig())

        assert json.loads((tmp_path / "custom" / "config.json").read_text())["version"] == "1.0"
