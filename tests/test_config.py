# tests/test_config.py
from ipaddress import ip_address

import pytest

from pingstat.cli import build_argparser
from pingstat.config import (
    ConfigError,
    Settings,
    TargetEntry,
    load_config_file,
    parse_listen,
    parse_target_entry,
    resolve,
    settings_from_args,
    settings_from_mapping,
)

CONFIG = """
listen = "127.0.0.1:9427"
interval = 2.0
ttl = 40
netns = "blue"

targets = [
    "192.0.2.1",
    { target = "192.0.2.2", ttl = 8, interface = "eth1" },
    { target = "2001:db8::1", netns = "" },
]
"""


def _cli(argv):
    return settings_from_args(build_argparser().parse_args(argv))


def test_bare_and_structured_target_entries():
    assert parse_target_entry("192.0.2.1") == TargetEntry(target="192.0.2.1")
    entry = parse_target_entry({"target": "192.0.2.1", "timeout": 0.5})
    assert entry.timeout == 0.5 and entry.ttl is None


def test_structured_entry_without_target_is_rejected():
    with pytest.raises(ConfigError, match="target"):
        parse_target_entry({"ttl": 3})


def test_unknown_fields_are_rejected():
    with pytest.raises(ConfigError, match="colour"):
        parse_target_entry({"target": "192.0.2.1", "colour": "red"})
    with pytest.raises(ConfigError, match="verbose"):
        settings_from_mapping({"verbose": True})


def test_precedence_target_over_file_over_cli(tmp_path):
    path = tmp_path / "pingstat.toml"
    path.write_text(CONFIG)
    cli = _cli(["-l", "0.0.0.0:1", "-i", "5", "-t", "0.7", "--ttl", "60", "-I", "eth0", "--type", "raw",
                "198.51.100.1"])

    listen, targets = resolve(cli, load_config_file(path))

    assert listen == ("127.0.0.1", 9427)
    assert [str(t.target) for t in targets] == ["192.0.2.1", "192.0.2.2", "2001:db8::1", "198.51.100.1"]
    first, second, third, fourth = targets
    assert (first.ttl, first.interval, first.timeout, first.netns, first.interface) == (40, 2.0, 0.7, "blue", "eth0")
    assert (second.ttl, second.interface) == (8, "eth1")
    assert third.netns is None
    assert third.client_key.ipv6 is True
    assert fourth.ttl == 40
    assert all(t.sock_type == "raw" for t in targets)


def test_cli_only_configuration():
    listen, targets = resolve(_cli(["-l", "[::1]:9000", "-n", "red", "192.0.2.1"]))
    assert listen == ("::1", 9000)
    assert targets[0].netns == "red"
    assert targets[0].sock_type == "dgram"
    assert targets[0].interval is None
    assert targets[0].metrics_key == ("192.0.2.1", "red")


def test_missing_listen_is_fatal():
    with pytest.raises(ConfigError, match="listen address"):
        resolve(_cli(["192.0.2.1"]))


@pytest.mark.parametrize("data", [
    {"listen": "127.0.0.1:1", "targets": ["not-an-ip"]},
    {"listen": "127.0.0.1:1", "targets": [{"target": "192.0.2.1", "ttl": 0}]},
    {"listen": "127.0.0.1:1", "targets": [{"target": "192.0.2.1", "interval": -1}]},
    {"listen": "127.0.0.1:1", "timeout": "soon", "targets": ["192.0.2.1"]},
    {"listen": "127.0.0.1:1", "interval": float("nan"), "targets": ["192.0.2.1"]},
    {"listen": "127.0.0.1:1", "targets": [{"target": "192.0.2.1", "timeout": float("inf")}]},
    {"listen": "127.0.0.1:1", "type": "stream", "targets": []},
])
def test_invalid_values_are_rejected(data):
    with pytest.raises(ConfigError):
        resolve(Settings(), settings_from_mapping(data))


@pytest.mark.parametrize("value", ["9000", "localhost:9000", "127.0.0.1:http", "127.0.0.1:70000"])
def test_bad_listen_addresses(value):
    with pytest.raises(ConfigError):
        parse_listen(value)


def test_unreadable_or_malformed_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config_file(tmp_path / "missing.toml")
    bad = tmp_path / "bad.toml"
    bad.write_text("targets = [")
    with pytest.raises(ConfigError):
        load_config_file(bad)


def test_equal_network_setup_gives_equal_client_keys():
    _, targets = resolve(_cli(["-l", "127.0.0.1:1", "192.0.2.1", "192.0.2.2", "2001:db8::5"]))
    assert targets[0].client_key == targets[1].client_key
    assert targets[0].client_key != targets[2].client_key
    assert targets[0].target == ip_address("192.0.2.1")
