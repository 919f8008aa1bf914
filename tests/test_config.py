import json

import pytest

from gravixocr.config import API_KEY_ENV, DEFAULT_BASE_URL, DEFAULT_MAX_UPLOAD_BYTES, Settings, load_settings
from gravixocr.errors import ConfigurationError


def _write(tmp_path, data):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings(str(tmp_path / "missing.json"), environ={})
    assert settings == Settings()
    assert not settings.has_credential
    assert settings.max_upload_bytes == 10485760


def test_values_are_read_from_json(tmp_path):
    path = _write(tmp_path, {"model": "other/model", "request_timeout": 15, "max_upload_bytes": 1024})
    settings = load_settings(path, environ={})
    assert settings.model == "other/model"
    assert settings.request_timeout == 15.0
    assert settings.max_upload_bytes == 1024
    assert settings.base_url == DEFAULT_BASE_URL


def test_environment_key_takes_precedence(tmp_path):
    path = _write(tmp_path, {"api_key": "from-file"})
    assert load_settings(path, environ={API_KEY_ENV: "from-env"}).api_key == "from-env"
    assert load_settings(path, environ={}).api_key == "from-file"


def test_non_positive_timeout_disables_it(tmp_path):
    path = _write(tmp_path, {"request_timeout": 0})
    assert load_settings(path, environ={}).request_timeout is None


def test_invalid_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_settings(str(path), environ={}) == Settings()


def test_invalid_number_raises(tmp_path):
    path = _write(tmp_path, {"max_tokens": "lots"})
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(path, environ={})
    assert excinfo.value.error_code == "INVALID_CONFIGURATION"
    assert excinfo.value.status_code == 500


def test_with_overrides_returns_new_settings():
    base = Settings(api_key="k")
    changed = base.with_overrides(request_timeout=None)
    assert changed.request_timeout is None
    assert base.request_timeout == 60.0


def test_default_upload_limit_is_ten_mebibytes():
    assert DEFAULT_MAX_UPLOAD_BYTES == 10 * 1024 * 1024 == 10485760
    assert Settings().max_upload_bytes == 10485760
