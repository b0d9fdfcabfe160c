from pathlib import Path

import pytest

from refund_calc.config import (
    CATALOG_CSV,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_STORE_FILE,
    ConfigError,
    load_settings,
)


def test_defaults_without_file(tmp_path):
    s = load_settings(tmp_path / "absent.yaml", environ={})
    assert s.history_limit == DEFAULT_HISTORY_LIMIT
    assert s.default_currency == "USD"
    assert s.store_path == DEFAULT_STORE_FILE
    assert s.catalog_path == CATALOG_CSV
    assert s.secret_key == "dev-fallback"


def test_yaml_values_and_relative_paths(tmp_path):
    cfg = tmp_path / "refund_calc.yaml"
    cfg.write_text(
        "store_path: state/store.json\n"
        "catalog_path: meds.csv\n"
        "history_limit: 25\n"
        "default_currency: eur\n"
        "log_level: debug\n",
        encoding="utf8",
    )
    s = load_settings(cfg, environ={})
    assert s.store_path == tmp_path / "state" / "store.json"
    assert s.catalog_path == tmp_path / "meds.csv"
    assert s.history_limit == 25
    assert s.default_currency == "EUR"
    assert s.log_level == "DEBUG"


def test_environment_overrides_yaml(tmp_path):
    cfg = tmp_path / "refund_calc.yaml"
    cfg.write_text("history_limit: 25\n", encoding="utf8")
    env = {
        "REFUND_CALC_CONFIG": str(cfg),
        "REFUND_CALC_HISTORY_LIMIT": "5",
        "REFUND_CALC_STORE": str(tmp_path / "x.json"),
        "FLASK_SECRET_KEY": "s3cret",
    }
    s = load_settings(environ=env)
    assert s.history_limit == 5
    assert s.store_path == Path(tmp_path / "x.json")
    assert s.secret_key == "s3cret"


@pytest.mark.parametrize("text", ["history_limit: [1, 2\n", "- just\n- a list\n", "history_limit: 0\n", "history_limit: many\n"])
def test_bad_config_raises(tmp_path, text):
    cfg = tmp_path / "refund_calc.yaml"
    cfg.write_text(text, encoding="utf8")
    with pytest.raises(ConfigError):
        load_settings(cfg, environ={})
