"""
Unit Tests for Startup Security Checks.

Config is built from the real YAML files and then adjusted per test, so the
checks run against genuine schema objects.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from notevault.backend.core.config import AppConfig
from notevault.backend.core.startup_checks import StartupSecurityError, run_startup_checks

LONG_SECRET = "s" * 64


@pytest.fixture
def app_config():
    return AppConfig.load()


def _run(app_config, token_secret=LONG_SECRET):
    settings = SimpleNamespace(token_secret=token_secret)
    with patch("notevault.backend.core.startup_checks.get_app_config", return_value=app_config), \
         patch("notevault.backend.core.startup_checks.get_settings", return_value=settings):
        run_startup_checks()


def _make_production(app_config):
    app_config.application.environment = "production"
    app_config.application.debug = False
    app_config.application.docs_enabled = False
    app_config.application.cors.origins = ["https://notes.example.org"]
    app_config.features.api_detailed_errors = False


class TestTokenSigningChecks:
    def test_shipped_development_config_passes(self, app_config):
        _run(app_config)

    def test_short_secret_blocks_startup(self, app_config):
        with pytest.raises(StartupSecurityError, match="TOKEN_SECRET is 5 chars"):
            _run(app_config, token_secret="short")

    def test_non_hmac_algorithm_blocks_startup(self, app_config):
        app_config.security.capability.algorithm = "RS256"

        with pytest.raises(StartupSecurityError, match="not an HMAC algorithm"):
            _run(app_config)


class TestProductionSafety:
    def test_clean_production_config_passes(self, app_config):
        _make_production(app_config)
        _run(app_config)

    @pytest.mark.parametrize(
        "adjust, message",
        [
            (lambda c: setattr(c.application, "debug", True), "debug is true"),
            (lambda c: setattr(c.application, "docs_enabled", True), "docs_enabled"),
            (lambda c: setattr(c.features, "api_detailed_errors", True), "api_detailed_errors"),
            (
                lambda c: setattr(c.application.cors, "origins", ["http://localhost:3000"]),
                "localhost",
            ),
        ],
    )
    def test_unsafe_setting_blocks_startup(self, app_config, adjust, message):
        _make_production(app_config)
        adjust(app_config)

        with pytest.raises(StartupSecurityError, match=message):
            _run(app_config)

    def test_all_failures_reported_together(self, app_config):
        _make_production(app_config)
        app_config.application.debug = True
        app_config.application.docs_enabled = True

        with pytest.raises(StartupSecurityError, match="2 security check"):
            _run(app_config)

    def test_localhost_allowed_when_not_enforced(self, app_config):
        _make_production(app_config)
        app_config.application.cors.origins = ["http://localhost:3000"]
        app_config.security.cors.enforce_in_production = False

        _run(app_config)
