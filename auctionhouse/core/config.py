"""
Client configuration for auctionhouse.

Defines which chain to talk to, where each protocol's contract lives, how
wide log scans may be, and where local data is kept.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from auctionhouse.core.refs import ProtocolTag
from auctionhouse.crypto import is_valid_address
from auctionhouse.errors import ConfigurationError, UnsupportedProtocol

ENV_PREFIX = "AUCTIONHOUSE_"


# =============================================================================
# Known Deployments
# =============================================================================

KNOWN_DEPLOYMENTS: Dict[int, Dict[ProtocolTag, str]] = {
    # ETC Testnet (Mordor)
    63: {
        ProtocolTag.ENGLISH: "0x6B8419316646d750c8f812249541F01A69783498",
        ProtocolTag.ALLPAY: "0x0cA32365cD9157cB5846B66ABd17136618bC4F99",
        ProtocolTag.LINEAR: "0x5F02Bf7cee31ffe8050dc096d6ADc3c80319dE90",
        ProtocolTag.EXPONENTIAL: "0x25ddf5F3d7ea3061752a0F5Cb43088D44a62E20e",
        ProtocolTag.LOGARITHMIC: "0x46Bf2a057d051c2eA0ba9b0D90AeB1796308146A",
        ProtocolTag.VICKREY: "0x08f14f4c030c60826742Fa5C64915b312473B061",
    },
    # Citrea Testnet
    5115: {
        ProtocolTag.ENGLISH: "0xb082b7D4734FD7aaCB13De6cf281f6E631fF219E",
        ProtocolTag.ALLPAY: "0x389DbA9d0f77fec16835C0BfBd2442A748681F80",
        ProtocolTag.LINEAR: "0x8972e8Fe7E263f146A972FFc24DD2Ac9D3251B08",
        ProtocolTag.EXPONENTIAL: "0xc82016DDc188a024EeB0873007f75f5FC7Bc8d55",
        ProtocolTag.LOGARITHMIC: "0xD0CC7d8CC2C369597a042772d22D3e84CE8d4D99",
        ProtocolTag.VICKREY: "0xEf5c73B00A263bA71c6318Ead9A345b1d61B3D0d",
    },
}

# Maximum blocks per log query (0 = unlimited)
RANGE_LIMITS: Dict[int, int] = {
    1: 0,
    61: 0,
    137: 0,
    56: 0,
    8453: 0,
    5115: 999,
    63: 10_000_000,
}

DEFAULT_SCAN_WINDOW = 10_000  # blocks


# =============================================================================
# Client Config
# =============================================================================


class ClientConfig(BaseModel):
    """Configuration for one client session"""

    chain_id: int = 63
    contracts: Dict[ProtocolTag, str] = Field(default_factory=dict)
    range_limit: Optional[int] = Field(default=None, ge=0)
    scan_window: int = Field(default=DEFAULT_SCAN_WINDOW, gt=0)

    data_dir: Path = Path("~/.auctionhouse")
    log_level: str = "INFO"
    secret_passphrase: Optional[str] = None

    @field_validator("contracts")
    @classmethod
    def _check_addresses(cls, contracts: Dict[ProtocolTag, str]) -> Dict[ProtocolTag, str]:
        for tag, address in contracts.items():
            if not is_valid_address(address):
                raise ValueError(f"invalid {tag.value} contract address {address!r}")
        return contracts

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, level: str) -> str:
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {level!r}")
        return level

    @model_validator(mode="after")
    def _fill_defaults(self) -> "ClientConfig":
        known = KNOWN_DEPLOYMENTS.get(self.chain_id, {})
        for tag, address in known.items():
            self.contracts.setdefault(tag, address)
        if self.range_limit is None:
            self.range_limit = RANGE_LIMITS.get(self.chain_id, 0)
        self.data_dir = self.data_dir.expanduser()
        return self

    def contract_address(self, protocol: ProtocolTag) -> str:
        """
        Address of the contract serving `protocol` on this chain.

        Raises:
            UnsupportedProtocol: if no contract is configured for it
        """
        address = self.contracts.get(ProtocolTag.parse(protocol))
        if not address:
            raise UnsupportedProtocol(
                f"No {ProtocolTag.parse(protocol).value} contract configured for chain {self.chain_id}"
            )
        return address

    @property
    def db_path(self) -> Path:
        return self.data_dir / "auctionhouse.db"


def _from_environment() -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    scalar_fields = {
        "CHAIN_ID": "chain_id",
        "RANGE_LIMIT": "range_limit",
        "SCAN_WINDOW": "scan_window",
        "DATA_DIR": "data_dir",
        "LOG_LEVEL": "log_level",
        "SECRET_PASSPHRASE": "secret_passphrase",
    }
    for suffix, name in scalar_fields.items():
        value = os.environ.get(ENV_PREFIX + suffix)
        if value:
            data[name] = value

    contracts = {}
    for tag in ProtocolTag:
        value = os.environ.get(f"{ENV_PREFIX}CONTRACT_{tag.name}")
        if value:
            contracts[tag.value] = value
    if contracts:
        data["contracts"] = contracts
    return data


def load_config(
    config_path: Optional[str] = None,
    env_file: Optional[str] = None,
    **overrides: Any,
) -> ClientConfig:
    """
    Load configuration.

    Sources, lowest precedence first: built-in defaults, JSON file at
    `config_path`, `AUCTIONHOUSE_*` environment variables (after loading
    `env_file` or a .env found from the working directory), `overrides`.

    Raises:
        ConfigurationError: if the merged values are invalid
    """
    load_dotenv(dotenv_path=env_file, override=False)

    data: Dict[str, Any] = {}
    if config_path:
        try:
            data.update(json.loads(Path(config_path).read_text()))
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e

    env = _from_environment()
    contracts = {**data.get("contracts", {}), **env.pop("contracts", {})}
    data.update(env)
    if contracts:
        data["contracts"] = contracts
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
