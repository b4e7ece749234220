"""Configuration loading and management."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

try:
    import tomli
except ImportError:  # pragma: no cover
    import tomllib as tomli  # Python 3.11+

from mcp_bitcom.protocols import AIP_PREFIX, B_PREFIX, BAP_PREFIX, MAP_PREFIX


class ConnectionMethod(Enum):
    """Node connection method."""
    CLI = "cli"
    RPC = "rpc"


class Network(Enum):
    """Node network."""
    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


# Default RPC ports per network
DEFAULT_PORTS = {
    Network.MAINNET: 8332,
    Network.TESTNET: 18332,
    Network.REGTEST: 18443,
}


@dataclass
class Config:
    """Server configuration."""

    # Connection settings
    connection_method: ConnectionMethod = ConnectionMethod.CLI
    network: Network = Network.MAINNET

    # CLI settings
    cli_path: str = "bitcoin-cli"
    cli_datadir: str = ""

    # RPC settings
    rpc_host: str = "127.0.0.1"
    rpc_port: Optional[int] = None
    rpc_user: str = ""
    rpc_password: str = ""

    # Limits
    max_script_size: int = 102400  # 100KB

    # Logging
    log_level: str = "WARNING"

    # Protocol ids
    map_prefix: str = MAP_PREFIX
    b_prefix: str = B_PREFIX
    aip_prefix: str = AIP_PREFIX
    bap_prefix: str = BAP_PREFIX

    @property
    def default_rpc_port(self) -> int:
        """Get default RPC port for current network."""
        return DEFAULT_PORTS[self.network]

    def get_rpc_port(self) -> int:
        """Get configured or default RPC port."""
        return self.rpc_port if self.rpc_port else self.default_rpc_port


DEFAULT_CONFIG = Config()


def load_config(path: Path) -> Config:
    """Load configuration from TOML file.

    Args:
        path: Path to config file

    Returns:
        Loaded configuration, merged with defaults
    """
    if not path.exists():
        return Config()

    with open(path, "rb") as f:
        data = tomli.load(f)

    conn = data.get("connection", {})
    cli = data.get("cli", {})
    rpc = data.get("rpc", {})
    limits = data.get("limits", {})
    logging_ = data.get("logging", {})
    protocols = data.get("protocols", {})

    return Config(
        connection_method=ConnectionMethod(conn.get("method", "cli")),
        network=Network(conn.get("network", "mainnet")),
        cli_path=cli.get("path", "bitcoin-cli"),
        cli_datadir=cli.get("datadir", ""),
        rpc_host=rpc.get("host", "127.0.0.1"),
        rpc_port=rpc.get("port"),
        rpc_user=rpc.get("user", ""),
        rpc_password=rpc.get("password", ""),
        max_script_size=limits.get("max_script_size", 102400),
        log_level=logging_.get("level", "WARNING").upper(),
        map_prefix=protocols.get("map", MAP_PREFIX),
        b_prefix=protocols.get("b", B_PREFIX),
        aip_prefix=protocols.get("aip", AIP_PREFIX),
        bap_prefix=protocols.get("bap", BAP_PREFIX),
    )
