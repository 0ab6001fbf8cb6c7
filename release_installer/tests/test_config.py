# Path: release_installer/tests/test_config.py
"""Environment configuration loading."""

from pathlib import Path

import pytest

from release_installer.core.config_loader import ConfigLoader
from release_installer.constants import (
    CATALOG_CACHE_FILENAME,
    ENV_APP_SUPPORT_DIR,
    ENV_DOWNLOAD_COOKIES,
    ENV_DOWNLOADER,
    ENV_EXPECTED_AUTHORITIES,
    ENV_RESUME_RETRY_ATTEMPTS,
)


def test_environment_values(monkeypatch, tmp_path):
    monkeypatch.setenv(ENV_APP_SUPPORT_DIR, str(tmp_path / 'support'))
    monkeypatch.setenv(ENV_DOWNLOAD_COOKIES, 'session=abc; token = x=y ;broken')
    monkeypatch.setenv(ENV_EXPECTED_AUTHORITIES, 'Leaf, Intermediate ,Root')
    monkeypatch.setenv(ENV_RESUME_RETRY_ATTEMPTS, '5')
    monkeypatch.setenv(ENV_DOWNLOADER, 'ARIA2')

    config = ConfigLoader()

    assert config['archive_dir'] == tmp_path / 'support'
    assert config['catalog_cache_file'] == tmp_path / 'support' / CATALOG_CACHE_FILENAME
    assert config['download_cookies'] == {'session': 'abc', 'token': 'x=y'}
    assert config['expected_certificate_authority'] == ['Leaf', 'Intermediate', 'Root']
    assert config['resume_retry_attempts'] == 5
    assert config['downloader'] == 'aria2'


@pytest.mark.parametrize('key, value', [
    (ENV_DOWNLOADER, 'curl'),
    (ENV_RESUME_RETRY_ATTEMPTS, 'three'),
])
def test_invalid_values_are_rejected(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError):
        ConfigLoader()


def test_override_moves_support_paths(tmp_path):
    base = ConfigLoader(values={'install_dir': Path('/Applications')})

    config = base.override(app_support_dir=tmp_path)

    assert config.get('archive_dir') == tmp_path
    assert config.get('catalog_cache_file') == tmp_path / CATALOG_CACHE_FILENAME
    assert config.get('install_dir') == Path('/Applications')
    assert 'archive_dir' not in base
