# pingstat/config.py
import math
import tomllib
from dataclasses import dataclass, field, fields
from ipaddress import ip_address
from typing import Any, Optional

from pingstat.schemas import SOCK_TYPES, TargetSpec

TARGET_FIELDS = ("target", "interface", "ttl", "timeout", "interval", "netns")
FILE_FIELDS = ("listen", "type", "interface", "netns", "interval", "timeout", "ttl", "targets")


class ConfigError(ValueError):
    pass


@dataclass
class Settings:
    """One configuration layer: command-line defaults or the config file."""
    listen: Optional[str] = None
    sock_type: Optional[str] = None     # "dgram" | "raw"
    interface: Optional[str] = None     # interface name or source address
    netns: Optional[str] = None
    interval: Optional[float] = None    # seconds
    timeout: Optional[float] = None     # seconds
    ttl: Optional[int] = None
    targets: list = field(default_factory=list)


@dataclass
class TargetEntry:
    """A target as written: bare address, or address plus per-target overrides."""
    target: str
    interface: Optional[str] = None
    ttl: Optional[int] = None
    timeout: Optional[float] = None
    interval: Optional[float] = None
    netns: Optional[str] = None         # "" selects the default namespace explicitly


def parse_target_entry(entry: Any) -> TargetEntry:
    if isinstance(entry, str):
        return TargetEntry(target=entry)
    if not isinstance(entry, dict):
        raise ConfigError(f"target must be an address or a table, got {entry!r}")
    unknown = sorted(set(entry) - set(TARGET_FIELDS))
    if unknown:
        raise ConfigError(f"unknown target field {unknown[0]!r}, expected one of {', '.join(TARGET_FIELDS)}")
    if "target" not in entry:
        raise ConfigError(f"missing field 'target' in {entry!r}")
    return TargetEntry(**entry)


def settings_from_mapping(data: dict) -> Settings:
    unknown = sorted(set(data) - set(FILE_FIELDS))
    if unknown:
        raise ConfigError(f"unknown config field {unknown[0]!r}, expected one of {', '.join(FILE_FIELDS)}")
    if not isinstance(data.get("targets", []), list):
        raise ConfigError("targets must be a list")
    kwargs = {k: v for k, v in data.items() if k not in ("type", "targets")}
    return Settings(
        sock_type=data.get("type"),
        targets=[parse_target_entry(t) for t in data.get("targets", [])],
        **kwargs,
    )


def load_config_file(path) -> Settings:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e
    return settings_from_mapping(data)


def parse_listen(value: str) -> tuple[str, int]:
    """'127.0.0.1:9000' or '[::1]:9000' -> (host, port)."""
    if not isinstance(value, str):
        raise ConfigError(f"listen address must be a string, got {value!r}")
    host, sep, port = value.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"listen address {value!r} must be host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        ip_address(host)
        port_num = int(port)
    except ValueError as e:
        raise ConfigError(f"invalid listen address {value!r}: {e}") from e
    if not 0 <= port_num <= 65535:
        raise ConfigError(f"invalid listen port in {value!r}")
    return host, port_num


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def _check_positive(name: str, value, where: str):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) \
            or not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} for {where} must be a positive number of seconds, got {value!r}")
    return float(value)


def _check_ttl(value, where: str):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 255:
        raise ConfigError(f"ttl for {where} must be an integer in 1..255, got {value!r}")
    return value


def resolve_target(entry: TargetEntry, file: Settings, cli: Settings, sock_type: str) -> TargetSpec:
    try:
        if not isinstance(entry.target, str):
            raise ValueError(entry.target)
        addr = ip_address(entry.target)
    except ValueError as e:
        raise ConfigError(f"invalid target address {entry.target!r}") from e
    where = str(addr)
    for name in ("interface", "netns"):
        for v in (getattr(entry, name), getattr(file, name), getattr(cli, name)):
            if v is not None and not isinstance(v, str):
                raise ConfigError(f"{name} for {where} must be a string, got {v!r}")

    netns = entry.netns if entry.netns is not None else _first(file.netns, cli.netns)
    return TargetSpec(
        target=addr,
        interface=_first(entry.interface, file.interface, cli.interface) or None,
        ttl=_check_ttl(_first(entry.ttl, file.ttl, cli.ttl), where),
        timeout=_check_positive("timeout", _first(entry.timeout, file.timeout, cli.timeout), where),
        interval=_check_positive("interval", _first(entry.interval, file.interval, cli.interval), where),
        netns=netns or None,
        sock_type=sock_type,
    )


def resolve(cli: Settings, file: Optional[Settings] = None) -> tuple[tuple[str, int], list[TargetSpec]]:
    """
    Merge the layers into the listen address and the ordered target list.
    Precedence: per-target value > file value > command-line value.
    File targets come first, then command-line targets.
    """
    file = file or Settings()
    listen = _first(file.listen, cli.listen)
    if listen is None:
        raise ConfigError("Please provide the listen address in config or cli arguments")

    sock_type = _first(file.sock_type, cli.sock_type, "dgram")
    if sock_type not in SOCK_TYPES:
        raise ConfigError(f"socket type must be one of {', '.join(SOCK_TYPES)}, got {sock_type!r}")

    entries = [parse_target_entry(t) if not isinstance(t, TargetEntry) else t
               for t in list(file.targets) + list(cli.targets)]
    targets = [resolve_target(e, file, cli, sock_type) for e in entries]
    return parse_listen(listen), targets


def settings_from_args(args) -> Settings:
    """Command-line layer from an argparse namespace."""
    values = {f.name: getattr(args, f.name, None) for f in fields(Settings) if f.name != "targets"}
    return Settings(targets=[TargetEntry(target=t) for t in (args.target or [])], **values)
