import json
import logging

import pytest

from scripts.stale_devices.logging_config import LIBRARY_LOGGERS, JsonFormatter, configure_logging
from scripts.stale_devices.secrets import resolve_secret


def test_plain_values_pass_through() -> None:
    assert resolve_secret("hunter2") == "hunter2"


def test_keyring_reference(monkeypatch) -> None:
    import keyring

    monkeypatch.setattr(
        keyring, "get_password",
        lambda service, user: "pw" if (service, user) == ("stale-devices", "svc") else None,
    )

    assert resolve_secret("keyring://stale-devices/svc") == "pw"
    with pytest.raises(RuntimeError):
        resolve_secret("keyring://stale-devices/other")


def test_malformed_keyring_reference() -> None:
    with pytest.raises(ValueError):
        resolve_secret("keyring://no-user")


def test_json_formatter_includes_extras() -> None:
    record = logging.LogRecord(
        "stale_devices.collector", logging.WARNING, __file__, 1,
        "Skipping partition %s", ("b.example.com",), None,
    )
    record.partition = "b.example.com"
    record.records = 0

    entry = json.loads(JsonFormatter().format(record))

    assert entry["level"] == "WARNING"
    assert entry["message"] == "Skipping partition b.example.com"
    assert entry["partition"] == "b.example.com"
    assert entry["records"] == 0
    assert "run_id" not in entry


@pytest.fixture
def restore_loggers():
    names = ("stale_devices",) + LIBRARY_LOGGERS
    saved = {
        name: (lg.level, list(lg.handlers), lg.propagate)
        for name, lg in ((n, logging.getLogger(n)) for n in names)
    }
    yield
    for name, (level, handlers, propagate) in saved.items():
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.handlers[:] = handlers
        lg.propagate = propagate


def test_client_library_logs_share_the_json_handler(restore_loggers, capsys) -> None:
    handler = configure_logging("DEBUG", "WARNING")

    assert logging.getLogger("stale_devices").handlers == [handler]
    assert logging.getLogger("stale_devices").level == logging.DEBUG
    for name in LIBRARY_LOGGERS:
        lib = logging.getLogger(name)
        assert lib.handlers == [handler]
        assert lib.level == logging.WARNING
        assert lib.propagate is False

    logging.getLogger("msal.token_cache").info("token refreshed")
    logging.getLogger("urllib3.connectionpool").warning("retrying graph.microsoft.com")

    lines = capsys.readouterr().err.strip().splitlines()
    assert [json.loads(line)["message"] for line in lines] == ["retrying graph.microsoft.com"]
