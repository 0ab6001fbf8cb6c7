# Path: release_installer/tests/test_logger.py
"""Component logger naming."""

import pytest

from release_installer.constants import LOGGER_DOWNLOAD, LOGGER_ENGINE, LOGGER_ROOT
from release_installer.core.logger import InstallerLogger, component_logger_name
from release_installer.tests.fixtures import make_config


@pytest.mark.parametrize('name, prefix, expected', [
    ('release_installer.engine.coordinator', LOGGER_ENGINE, 'release_installer.engine.coordinator'),
    ('release_installer.engine.download.aria2', LOGGER_ENGINE, 'release_installer.engine.download.aria2'),
    ('release_installer.engine.protocol_handlers', LOGGER_DOWNLOAD, 'release_installer.download.protocol_handlers'),
    ('release_installer.cli.main', LOGGER_ENGINE, 'release_installer.engine.main'),
    ('scratch', LOGGER_ENGINE, 'release_installer.engine.scratch'),
    (LOGGER_ENGINE, LOGGER_ENGINE, LOGGER_ENGINE),
])
def test_module_names_are_not_doubled(name, prefix, expected):
    assert component_logger_name(name, prefix) == expected


def test_component_loggers_share_the_root(tmp_path):
    installer_logger = InstallerLogger(make_config(tmp_path))

    logger = installer_logger.get_logger('release_installer.engine.coordinator', 'engine')

    assert logger.name == 'release_installer.engine.coordinator'
    assert logger.name.count('release_installer') == 1
    assert logger.name.startswith(f"{LOGGER_ROOT}.")


def test_unknown_component_uses_the_package_logger(tmp_path):
    installer_logger = InstallerLogger(make_config(tmp_path))

    logger = installer_logger.get_logger('release_installer.models.installed', 'models')

    assert logger.name == 'release_installer.models.installed'
