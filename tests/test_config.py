"""
Tests for configuration loading
"""

import pytest

from ictscan.config import DEFAULT_CONFIG, deep_merge, load_config


class TestLoadConfig:
    """Test YAML loading, merging and overrides"""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for var in ('ICTSCAN_CONFIG', 'RATE_LIMIT_PER_MINUTE', 'RATE_LIMIT_PER_HOUR'):
            monkeypatch.delenv(var, raising=False)

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / 'missing.yaml')

        assert config == DEFAULT_CONFIG

    def test_partial_file_merged(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("scanner:\n  default_limit: 3\nanalysis:\n  limits:\n    gaps: 4\n")

        config = load_config(path)

        assert config['scanner']['default_limit'] == 3
        assert config['scanner']['max_limit'] == DEFAULT_CONFIG['scanner']['max_limit']
        assert config['analysis']['limits']['gaps'] == 4
        assert config['analysis']['limits']['order_blocks'] == 5

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / 'custom.yaml'
        path.write_text("server:\n  port: 9001\n")
        monkeypatch.setenv('ICTSCAN_CONFIG', str(path))

        assert load_config()['server']['port'] == 9001

    def test_rate_limit_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv('RATE_LIMIT_PER_MINUTE', '7')

        config = load_config(tmp_path / 'missing.yaml')

        assert config['security']['requests_per_minute'] == 7

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_project_config_loads(self):
        """Test the shipped config.yaml is valid"""
        config = load_config()

        assert config['scanner']['default_limit'] == 10

    def test_deep_merge_does_not_mutate(self):
        base = {'a': {'b': 1, 'c': 2}}

        merged = deep_merge(base, {'a': {'b': 5}})

        assert merged == {'a': {'b': 5, 'c': 2}}
        assert base == {'a': {'b': 1, 'c': 2}}
