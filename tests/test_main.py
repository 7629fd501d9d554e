import pytest

import main

CONFIG_VARS = (
    "SHODAN_API_KEY",
    "SHODAN_AUTH_TOKEN",
    "SHODAN_BASE_URL",
    "SHODAN_CVEDB_URL",
    "SHODAN_TIMEOUT",
    "SHODAN_MAX_TOKENS",
    "MCP_TRANSPORT",
    "MCP_HTTP_HOST",
    "MCP_HTTP_PORT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test from an empty configuration, ignoring any local .env."""
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(main, "load_dotenv", lambda: None)


def _runner(calls, exc=None):
    def run(settings):
        calls.append(settings)
        if exc is not None:
            raise exc

        async def done():
            return None

        return done()

    return run


def test_unknown_transport_exits_1(monkeypatch, capsys):
    monkeypatch.setenv("MCP_TRANSPORT", "bogus")

    assert main.main() == 1
    assert "Fatal error: MCP_TRANSPORT" in capsys.readouterr().err


def test_negative_timeout_exits_1(monkeypatch, capsys):
    monkeypatch.setenv("SHODAN_TIMEOUT", "-5")

    assert main.main() == 1
    assert "SHODAN_TIMEOUT must be positive" in capsys.readouterr().err


def test_non_integer_port_exits_1(monkeypatch, capsys):
    monkeypatch.setenv("MCP_HTTP_PORT", "eighty")

    assert main.main() == 1
    assert "MCP_HTTP_PORT must be an integer" in capsys.readouterr().err


def test_config_errors_never_start_a_transport(monkeypatch):
    calls = []
    monkeypatch.setattr(main, "run_stdio", _runner(calls))
    monkeypatch.setenv("SHODAN_MAX_TOKENS", "0")

    assert main.main() == 1
    assert calls == []


def test_stdio_is_the_default_transport(monkeypatch):
    stdio_calls, http_calls = [], []
    monkeypatch.setattr(main, "run_stdio", _runner(stdio_calls))
    monkeypatch.setattr(main, "run_http", _runner(http_calls))

    assert main.main() == 0
    assert len(stdio_calls) == 1
    assert http_calls == []


def test_http_transport_selects_the_http_runner(monkeypatch):
    stdio_calls, http_calls = [], []
    monkeypatch.setattr(main, "run_stdio", _runner(stdio_calls))
    monkeypatch.setattr(main, "run_http", _runner(http_calls))
    monkeypatch.setenv("MCP_TRANSPORT", "http")
    monkeypatch.setenv("MCP_HTTP_PORT", "8080")

    assert main.main() == 0
    assert stdio_calls == []
    assert http_calls[0].http_port == 8080


def test_startup_failure_exits_1(monkeypatch):
    calls = []
    monkeypatch.setattr(main, "run_stdio", _runner(calls, RuntimeError("port already in use")))

    assert main.main() == 1
    assert len(calls) == 1


def test_interrupt_exits_0(monkeypatch):
    monkeypatch.setattr(main, "run_stdio", _runner([], KeyboardInterrupt()))

    assert main.main() == 0
