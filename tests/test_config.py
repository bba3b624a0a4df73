# tests/test_config.py
from sysvital.core.classifiers import ThreatRules
from sysvital.core.config import DEFAULT_MALICIOUS_PORTS, Config


def test_defaults_without_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("SYSVITAL_DB_NAME", raising=False)
    config = Config(str(tmp_path / "missing.yaml"))

    assert config.db_name == "sysvital.db"
    assert config.malicious_ports == DEFAULT_MALICIOUS_PORTS
    assert config.watchlist_countries == ["CN", "RU"]
    assert config.collect_timeout == 30.0
    assert config.narrator_rate_limit == 20


def test_yaml_values_are_used(tmp_path, monkeypatch):
    monkeypatch.delenv("SYSVITAL_DB_NAME", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n"
        "  name: audit.db\n"
        "network:\n"
        "  malicious_ports: [8081]\n"
        "  watchlist_countries: [kp]\n"
        "  safe_processes: [Backup]\n"
        "engine:\n"
        "  collect_timeout: 5\n"
        "startup:\n"
        "  estimated_delay_ms: 900\n",
        encoding="utf-8",
    )
    config = Config(str(path))
    rules = ThreatRules.from_config(config)

    assert config.db_name == "audit.db"
    assert config.collect_timeout == 5.0
    assert config.startup_delay_ms == 900
    assert rules.malicious_ports == frozenset({8081})
    assert rules.watchlist_countries == frozenset({"KP"})
    assert rules.is_safe_process("BackupAgent.exe")


def test_environment_overrides_yaml(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("database:\n  name: audit.db\n", encoding="utf-8")
    monkeypatch.setenv("SYSVITAL_DB_NAME", "env.db")
    monkeypatch.setenv("SYSVITAL_NARRATOR_API_KEY", "sk-test")

    config = Config(str(path))

    assert config.db_name == "env.db"
    assert config.narrator_api_key == "sk-test"


def test_invalid_yaml_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("network: [unclosed\n", encoding="utf-8")
    assert Config(str(path)).data == {}


def test_logging_section(tmp_path, monkeypatch):
    monkeypatch.delenv("SYSVITAL_LOG_LEVEL", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: debug\n  file: audit.log\n", encoding="utf-8")

    config = Config(str(path))

    assert config.log_level == "debug"
    assert config.log_file == "audit.log"
    assert Config(str(tmp_path / "missing.yaml")).log_file == ""
