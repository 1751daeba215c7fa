"""Tests for process and per-instance configuration."""

import pytest
from dateutil import tz

from formant import Configuration, ConfigurationError, configure, get_config, reset_config, set_config
from formant.config import load_bundled_translations


class TestConfiguration:
    """Test the Configuration value object."""

    def test_bundled_locales(self):
        translations = load_bundled_translations()
        assert {"en", "fr"} <= set(translations)
        assert translations["en"]["time"]["formats"]["day_date_time"] == "%a, %b %e, %l:%M %p"

    def test_time_format_lookup(self):
        config = get_config()
        assert config.time_format("short") == "%d. %b %H:%M"
        assert config.translate("time.pm") == "pm"
        assert config.translate("time.missing", default="x") == "x"

    def test_unknown_time_zone(self):
        with pytest.raises(ConfigurationError, match="Unknown time zone"):
            Configuration(time_zone="Nowhere/Special")

    def test_negative_scale(self):
        with pytest.raises(ConfigurationError):
            Configuration(currency_scale=-1)

    def test_tzinfo(self):
        assert get_config().tzinfo == tz.gettz("America/Chicago")

    def test_is_immutable(self):
        config = get_config()
        with pytest.raises(AttributeError):
            config.time_zone = "UTC"
        with pytest.raises(TypeError):
            config.translations["de"] = {}

    def test_with_translations_returns_new_object(self):
        config = get_config()
        extended = config.with_translations("en", {"time": {"formats": {"iso": "%Y-%m-%d"}}})

        assert extended.time_format("iso") == "%Y-%m-%d"
        assert extended.time_format("short") == "%d. %b %H:%M"
        with pytest.raises(ConfigurationError):
            config.time_format("iso")

    def test_load_locale_file(self, tmp_path):
        path = tmp_path / "de.yml"
        path.write_text(
            "de:\n  time:\n    formats:\n      short: '%d.%m. %H:%M'\n",
            encoding="utf-8",
        )
        config = get_config().load_locale_file(path)
        assert config.time_format("short", locale="de") == "%d.%m. %H:%M"

    def test_load_missing_locale_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            get_config().load_locale_file(tmp_path / "missing.yml")

    def test_load_malformed_locale_file(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            get_config().load_locale_file(path)


class TestProcessDefault:
    """Test configure/reset of the process-wide default."""

    def test_configure_replaces_default(self):
        config = configure(default_country="GB")
        assert get_config() is config
        assert config.default_country == "GB"
        assert config.time_zone == "America/Chicago"

    def test_set_config_returns_previous(self):
        current = get_config()
        replacement = current.replace(default_locale="fr")
        assert set_config(replacement) is current
        assert get_config() is replacement

    def test_reset_reads_environment(self, monkeypatch):
        monkeypatch.setenv("FORMANT_TIME_ZONE", "Europe/Paris")
        monkeypatch.setenv("FORMANT_DEFAULT_COUNTRY", "FR")
        monkeypatch.setenv("FORMANT_CURRENCY_SCALE", "4")
        monkeypatch.delenv("FORMANT_LOCALE", raising=False)
        config = reset_config()
        assert config.time_zone == "Europe/Paris"
        assert config.default_country == "FR"
        assert config.currency_scale == 4
        assert config.default_locale == "en"

    def test_reset_defaults_to_utc(self, monkeypatch):
        monkeypatch.delenv("FORMANT_TIME_ZONE", raising=False)
        assert reset_config().time_zone == "UTC"

    def test_reset_rejects_non_integer_scale(self, monkeypatch):
        monkeypatch.setenv("FORMANT_CURRENCY_SCALE", "six")
        with pytest.raises(ConfigurationError, match="FORMANT_CURRENCY_SCALE"):
            reset_config()
