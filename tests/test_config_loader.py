import pytest
from pydantic import ValidationError

from policy_admin.utils.config_loader import AppConfig, load_app_config


def test_defaults():
    cfg = AppConfig()
    assert cfg.validation.max_schema_depth == 16
    assert cfg.validation.revalidate_on_schema_change is False
    assert (cfg.pagination.default_limit, cfg.pagination.max_limit) == (10, 100)
    assert cfg.security.api_keys_env == "API_KEYS"
    assert "/docs" in cfg.security.public_paths


def test_load_from_yaml(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text(
        "validation:\n  max_schema_depth: 4\n  revalidate_on_schema_change: true\npagination:\n  default_limit: 5\n",
        encoding="utf-8",
    )
    cfg = load_app_config(path)
    assert cfg.validation.max_schema_depth == 4
    assert cfg.validation.revalidate_on_schema_change is True
    assert cfg.pagination.default_limit == 5
    assert cfg.pagination.max_limit == 100


def test_project_config_file_loads():
    cfg = load_app_config()
    assert isinstance(cfg, AppConfig)


def test_env_path_missing_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_CONFIG_PATH", str(tmp_path / "absent.yml"))
    assert load_app_config() == AppConfig()


def test_explicit_missing_path_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_app_config(tmp_path / "absent.yml")


def test_invalid_values_raise(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("pagination:\n  default_limit: 500\n  max_limit: 50\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_app_config(path)


def test_security_section(tmp_path, monkeypatch):
    path = tmp_path / "app_config.yml"
    path.write_text("security:\n  api_keys_env: PARTNER_KEYS\n  public_paths: [/health]\n", encoding="utf-8")
    monkeypatch.setenv("PARTNER_KEYS", "a, ,b")
    cfg = load_app_config(path)
    assert cfg.security.public_paths == ["/health"]
    assert cfg.security.api_keys() == ["a", "b"]


def test_project_config_lists_public_paths():
    assert "/health" in load_app_config().security.public_paths
