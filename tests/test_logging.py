import logging

from apps.api.core.config import Settings
from apps.api.core.logging import (
    SERVICE_LOGGER_NAMESPACE,
    build_logging_config,
    configure_logging,
    init_tracer,
    parse_otlp_headers,
)


def test_parse_otlp_headers_skips_malformed_pairs():
    headers = parse_otlp_headers("authorization=Bearer abc, ,broken,=empty,x-team = support")

    assert headers == {"authorization": "Bearer abc", "x-team": "support"}
    assert parse_otlp_headers(None) == {}


def test_logging_config_uses_settings_level_for_service_namespace():
    config = build_logging_config(Settings(log_level="debug"))

    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"][SERVICE_LOGGER_NAMESPACE]["level"] == "DEBUG"


def test_unknown_log_level_falls_back_to_info():
    logger = configure_logging(Settings(log_level="chatty", app_name="help-center-test"))

    assert logger.name == "help-center-test"
    assert logger.level == logging.INFO


def test_tracer_is_disabled_by_default():
    assert init_tracer(Settings(otel_enabled=False)) is None
