import json

from config import DEFAULT_CONFIG, build_patterns, load_config, save_config
from log_parser import Login, Stop, classify


def test_missing_config_is_created(tmp_path):
    path = tmp_path / "config.json"
    conf = load_config(str(path))
    assert conf == DEFAULT_CONFIG
    assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG
    conf["log"]["path"] = "elsewhere.log"
    assert DEFAULT_CONFIG["log"]["path"] == "logs/latest.log"


def test_partial_config_is_merged_with_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"log": {"path": "/srv/mc/logs/latest.log"}, "rcon": {"enabled": False}}), encoding="utf-8")
    conf = load_config(str(path))
    assert conf["log"] == {"path": "/srv/mc/logs/latest.log", "interval": 2.0, "encoding": "utf-8"}
    assert conf["rcon"]["enabled"] is False
    assert conf["rcon"]["port"] == 25575
    assert conf["patterns"] == DEFAULT_CONFIG["patterns"]


def test_save_config_roundtrip(tmp_path):
    path = tmp_path / "config.json"
    conf = load_config(str(path))
    conf["log"]["interval"] = 0.5
    save_config(conf, str(path))
    assert load_config(str(path))["log"]["interval"] == 0.5
    assert not (tmp_path / "config.json.tmp").exists()


def test_build_patterns_from_config():
    patterns = build_patterns({"patterns": {"stop_marker": "Stopping the server", "announcements": True}})
    assert classify("Stopping the server", patterns) == Stop()
    assert classify("Alice joined the game", patterns) == Login("Alice")


def test_build_patterns_defaults():
    patterns = build_patterns({})
    assert classify("Stopping server", patterns) == Stop()
    assert classify("Stopping the server", patterns) is None
