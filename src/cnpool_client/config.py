from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

DEFAULT_AGENT = "cnpool-client/0.1"


@dataclass(frozen=True)
class ClientConfig:
    host: str
    port: int
    login: str
    password: str = "x"
    agent: str = DEFAULT_AGENT
    keepalive_s: Optional[float] = None  # read timeout; None blocks forever

    @property
    def address(self) -> Tuple[str, int]:
        return (self.host, self.port)


# (section, key) in the TOML file for each ClientConfig field
_TOML_KEYS = {
    "host": ("pool", "host"),
    "port": ("pool", "port"),
    "login": ("account", "login"),
    "password": ("account", "password"),
    "agent": ("client", "agent"),
    "keepalive_s": ("client", "keepalive"),
}

_DEFAULTS = {"host": "127.0.0.1", "port": 3333, "login": "x"}


def config_from_dict(cfg: Dict[str, Any]) -> ClientConfig:
    """
    Build a ClientConfig from parsed TOML:

      [pool]     host, port
      [account]  login, password
      [client]   agent, keepalive

    Missing keys fall back to the ClientConfig defaults.
    """
    fields: Dict[str, Any] = dict(_DEFAULTS)
    for name, (section, key) in _TOML_KEYS.items():
        table = cfg.get(section)
        if isinstance(table, dict) and key in table:
            fields[name] = table[key]
    fields["port"] = int(fields["port"])
    if fields.get("keepalive_s") is not None:
        fields["keepalive_s"] = float(fields["keepalive_s"])
    return ClientConfig(**fields)


def load_config(path: Optional[str]) -> ClientConfig:
    """ClientConfig from a TOML file, or all defaults when no path is given."""
    if not path:
        return config_from_dict({})
    try:
        import toml  # type: ignore
    except ImportError as e:
        raise RuntimeError("Config files require 'toml': pip install toml") from e
    return config_from_dict(toml.load(path))
