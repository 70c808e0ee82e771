"""Environment-driven configuration."""

from featuretree.base.config import FeatureTreeConfig, get_config, set_config


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("FEATURETREE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FEATURETREE_STATUS_URL", "http://status.local:3000/")
    monkeypatch.setenv("FEATURETREE_STATUS_RETRIES", "5")
    monkeypatch.setenv("FEATURETREE_ALLOWED_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("FEATURETREE_SEED", "false")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.delenv("FEATURETREE_API_PORT", raising=False)

    cfg = FeatureTreeConfig.from_env()

    assert cfg.storage.base_dir == tmp_path / "data"
    assert cfg.storage.workspace_path.is_dir()
    assert cfg.status.service_url == "http://status.local:3000"
    assert cfg.status.retry_attempts == 5
    assert cfg.allowed_origins == ("http://a.test", "http://b.test")
    assert cfg.seed_sample_data is False
    assert cfg.api_port == 8080


def test_defaults(monkeypatch, tmp_path):
    for name in ("FEATURETREE_STATUS_URL", "FEATURETREE_ALLOWED_ORIGINS", "FEATURETREE_API_PORT", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FEATURETREE_DATA_DIR", str(tmp_path))

    cfg = FeatureTreeConfig.from_env()

    assert cfg.status.service_url == ""
    assert cfg.api_port == 3000
    assert cfg.allowed_origins == ("*",)
    assert cfg.storage.db_path == tmp_path / "features.db"


def test_set_config_is_shared(config):
    assert get_config() is config
    other = FeatureTreeConfig(storage=config.storage, debug=True)
    set_config(other)
    assert get_config().debug is True
