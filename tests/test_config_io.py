import dataclasses
import json
import logging
from pathlib import Path

import pytest
import yaml

from chain_build import config_io as cio
from chain_build.config import load
from chain_build.contracts import NetworkEndpoint


def test_to_dict_layout():
    data = cio.to_dict(load())
    assert data == {
        "networks": {
            "development": {"host": "127.0.0.1", "port": 7545, "network_id": "*"},
        },
        "compilers": {
            "solc": {
                "version": "0.8.21",
                "settings": {
                    "evmVersion": "paris",
                    "optimizer": {"enabled": True, "runs": 200},
                },
            },
        },
    }


@pytest.mark.parametrize("fmt", ["json", "yaml"])
def test_text_round_trip(fmt):
    cfg = load()
    assert cio.loads(cio.dumps(cfg, fmt), fmt) == cfg


def test_yaml_keeps_wildcard_and_version_as_strings():
    data = yaml.safe_load(cio.dumps(load(), "yaml"))
    assert data["networks"]["development"]["network_id"] == "*"
    assert data["compilers"]["solc"]["version"] == "0.8.21"


def test_unknown_format():
    with pytest.raises(ValueError, match="toml"):
        cio.dumps(load(), "toml")


def test_from_dict_missing_key():
    data = cio.to_dict(load())
    del data["compilers"]["solc"]["settings"]["optimizer"]["runs"]
    with pytest.raises(cio.ConfigFormatError, match="compilers.solc.settings.optimizer.runs"):
        cio.from_dict(data)


def test_from_dict_rejects_bool_port():
    data = cio.to_dict(load())
    data["networks"]["development"]["port"] = True
    with pytest.raises(cio.ConfigFormatError, match="networks.development.port"):
        cio.from_dict(data)


def test_from_dict_numeric_network_id():
    data = cio.to_dict(load())
    data["networks"]["development"]["network_id"] = 5777
    cfg = cio.from_dict(data)
    assert cfg.networks["development"].network_id == "5777"


def test_loads_rejects_non_mapping():
    with pytest.raises(cio.ConfigFormatError):
        cio.loads("[1, 2]", "json")
    with pytest.raises(cio.ConfigFormatError):
        cio.loads("{not json", "json")


@pytest.mark.parametrize("fmt", ["json", "yaml"])
def test_save_and_read(tmp_path: Path, fmt):
    out_path = cio.save_config(load(), tmp_path / "artifacts", fmt)
    assert out_path.name == f"build-config.{fmt}"
    assert cio.read_config(out_path) == load()


def test_read_config_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        cio.read_config(tmp_path / "missing.json")

    bad = tmp_path / "build-config.toml"
    bad.write_text("x = 1\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported config file type"):
        cio.read_config(bad)


def test_fingerprint_is_stable():
    assert cio.fingerprint(load()) == cio.fingerprint(load())
    assert len(cio.fingerprint(load())) == 64


def test_validate_default_config():
    assert cio.validate(load()) == []


def test_validate_reports_problems():
    cfg = load()
    broken = dataclasses.replace(
        cfg,
        networks={"development": NetworkEndpoint(host="", port=70000, network_id="*")},
        solc=dataclasses.replace(
            cfg.solc,
            version="latest",
            settings=dataclasses.replace(
                cfg.solc.settings,
                evm_version="osaka-ish",
                optimizer=dataclasses.replace(cfg.solc.settings.optimizer, runs=-1),
            ),
        ),
    )
    problems = cio.validate(broken)
    assert len(problems) == 5
    assert any("port out of range" in p for p in problems)
    assert any("evmVersion unknown" in p for p in problems)


def test_cli_show_json(capsys):
    assert cio.main(["show"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["compilers"]["solc"]["settings"]["evmVersion"] == "paris"


def test_cli_export_then_check(tmp_path: Path, capsys):
    assert cio.main(["export", "--out", str(tmp_path), "--format", "yaml"]) == 0
    out_path = Path(capsys.readouterr().out.strip())
    assert out_path.exists()
    assert cio.main(["check", "--file", str(out_path)]) == 0


def test_cli_check_reports_problems(tmp_path: Path, capsys):
    data = cio.to_dict(load())
    data["networks"]["development"]["port"] = 0
    path = tmp_path / "build-config.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    assert cio.main(["check", "--file", str(path)]) == 1
    assert "port out of range" in capsys.readouterr().out


def test_from_dict_rejects_colliding_network_names():
    text = (
        "networks:\n"
        "  1: {host: a, port: 1, network_id: '1'}\n"
        "  '1': {host: b, port: 2, network_id: '2'}\n"
        "compilers:\n"
        "  solc:\n"
        "    version: 0.8.21\n"
        "    settings: {evmVersion: paris, optimizer: {enabled: true, runs: 200}}\n"
    )
    with pytest.raises(cio.ConfigFormatError, match="Duplicate network name"):
        cio.loads(text, "yaml")


def test_read_config_yml_suffix(tmp_path: Path):
    path = tmp_path / "build-config.yml"
    path.write_text(cio.dumps(load(), "yaml"), encoding="utf-8")
    assert cio.read_config(path) == load()


def test_read_config_not_utf8(tmp_path: Path):
    path = tmp_path / "build-config.json"
    path.write_bytes(b"\xff\xfe\x00{")
    with pytest.raises(cio.ConfigFormatError, match="not UTF-8"):
        cio.read_config(path)


def test_loads_invalid_yaml():
    with pytest.raises(cio.ConfigFormatError, match="Invalid YAML"):
        cio.loads("networks: [unclosed", "yaml")


def test_loads_unknown_format():
    with pytest.raises(ValueError, match="toml"):
        cio.loads("x = 1", "toml")


@pytest.mark.parametrize(
    "verbosity, level",
    [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (3, logging.DEBUG)],
)
def test_setup_logging_levels(monkeypatch, verbosity, level):
    calls = []
    monkeypatch.setattr(cio.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    cio.setup_logging(verbosity)
    assert calls[0]["level"] == level


def test_cli_check_malformed_file(tmp_path: Path, capsys):
    path = tmp_path / "build-config.json"
    path.write_text("{not json", encoding="utf-8")
    assert cio.main(["check", "--file", str(path)]) == 1
    assert "Invalid JSON" in capsys.readouterr().out


def test_cli_check_missing_or_unsupported_file(tmp_path: Path, capsys):
    assert cio.main(["check", "--file", str(tmp_path / "missing.json")]) == 1
    assert "config file not found" in capsys.readouterr().out

    path = tmp_path / "build-config.toml"
    path.write_text("x = 1\n", encoding="utf-8")
    assert cio.main(["check", "--file", str(path)]) == 1
    assert "Unsupported config file type" in capsys.readouterr().out
