# tests/test_config_logging.py
import json
import logging

import pytest
from pydantic import ValidationError

from contentstack_delivery import logging_utils
from contentstack_delivery.config.app_config import StackConfig, load_config, save_config
from contentstack_delivery.errors import MISSING_ENVIRONMENT, MissingArgument
from contentstack_delivery.http.retry import BackoffStrategy
from contentstack_delivery.logging_utils import (
    CorrelationIdFilter,
    JsonFormatter,
    correlation_scope,
    current_correlation_id,
    setup_logging,
)


def test_defaults():
    cfg = StackConfig(api_key="k", delivery_token="t", environment="prod")
    assert cfg.endpoint == "https://cdn.contentstack.io"
    assert cfg.version == "v3"
    assert cfg.retry_limit == 3
    assert cfg.retryable_status_codes == [408, 429, 502, 503, 504]


@pytest.mark.parametrize(
    "region, host",
    [
        ("EU", "eu-cdn.contentstack.com"),
        ("azure_na", "azure-na-cdn.contentstack.com"),
        ("gcp-na", "gcp-na-cdn.contentstack.com"),
        ("us", "cdn.contentstack.io"),
    ],
)
def test_region_endpoints(region, host):
    assert StackConfig(region=region).resolved_host == host


def test_custom_host_wins_over_region():
    assert StackConfig(region="eu", host="cdn.example.com").endpoint == "https://cdn.example.com"


def test_unknown_region_rejected():
    with pytest.raises(ValidationError):
        StackConfig(region="mars")


def test_env_vars_are_read(monkeypatch):
    monkeypatch.setenv("CONTENTSTACK_API_KEY", "env-key")
    monkeypatch.setenv("CONTENTSTACK_RETRY_LIMIT", "5")
    cfg = StackConfig()
    assert cfg.api_key == "env-key"
    assert cfg.retry_limit == 5


def test_missing_environment_message():
    cfg = StackConfig(api_key="k", delivery_token="t")
    with pytest.raises(MissingArgument) as exc:
        cfg.validate_credentials()
    assert str(exc.value) == MISSING_ENVIRONMENT


def test_build_retry_options():
    cfg = StackConfig(retry_limit=5, retry_delay_ms=250, backoff_strategy="LINEAR", retryable_status_codes=[503])
    opts = cfg.build_retry_options()
    assert opts.get_retry_limit() == 5
    assert opts.get_retry_delay() == 250
    assert opts.get_backoff_strategy() is BackoffStrategy.LINEAR
    assert opts.get_retryable_status_codes() == [503]
    assert not opts.is_frozen()


def test_save_and_load_config(tmp_path):
    path = tmp_path / "nested" / "stack.json"
    save_config(StackConfig(api_key="k", delivery_token="t", environment="prod", region="eu"), str(path))

    on_disk = json.loads(path.read_text())
    assert on_disk["region"] == "eu"
    assert "branch" not in on_disk

    loaded = load_config(str(path))
    assert loaded.api_key == "k"
    assert loaded.endpoint == "https://eu-cdn.contentstack.com"


def test_correlation_scope_binds_and_restores():
    assert current_correlation_id() == "-"
    with correlation_scope("abc123") as cid:
        assert cid == "abc123"
        assert current_correlation_id() == "abc123"
        with correlation_scope() as inner:
            assert inner != "abc123"
        assert current_correlation_id() == "abc123"
    assert current_correlation_id() == "-"


def test_filter_and_json_formatter():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    with correlation_scope("cid-1"):
        CorrelationIdFilter().filter(record)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "hello world"
    assert payload["correlation_id"] == "cid-1"
    assert payload["level"] == "INFO"


def test_setup_logging_is_idempotent(monkeypatch):
    monkeypatch.setattr(logging_utils, "_CONFIGURED", False)
    root = logging.getLogger()

    def _count():
        return sum(isinstance(f, CorrelationIdFilter) for f in root.filters)

    before = _count()
    added = []
    try:
        setup_logging()
        setup_logging()
        added = [f for f in root.filters if isinstance(f, CorrelationIdFilter)]
        assert _count() == before + 1
    finally:
        for f in added[before:]:
            root.removeFilter(f)
