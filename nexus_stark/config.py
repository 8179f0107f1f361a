"""
Global configuration for multi-network support.
Manages StarkNet network endpoints, chain ids and the account artifact cache.
"""
from typing import Dict, Optional
from dataclasses import dataclass, asdict
import json
import os

DEFAULT_CHAIN_ID = "SN_GOERLI"
CONFIG_PATH_ENV = "NEXUS_STARK_CONFIG"


@dataclass
class NetworkConfig:
    """Configuration for a single network."""
    url: str
    starknet_chain_id: str = DEFAULT_CHAIN_ID
    name: Optional[str] = None

    def __post_init__(self):
        if not self.url:
            raise ValueError("Network URL cannot be empty")
        # the chain id is hashed as a short string
        if not self.starknet_chain_id or len(self.starknet_chain_id) > 31:
            raise ValueError(f"Invalid StarkNet chain id: {self.starknet_chain_id!r}")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'NetworkConfig':
        """Create from dictionary."""
        return cls(**data)


class Config:
    """
    Global configuration singleton for managing network settings.
    Automatically loads from and saves to config.json (or the file named by
    the NEXUS_STARK_CONFIG environment variable).

    Usage:
        config = Config()  # Auto-loads from config.json if exists
        config.add_network("alpha-goerli", NetworkConfig(...))
        chain_id = config.get_chain_id("alpha-goerli")
    """

    _instance = None
    DEFAULT_CONFIG_PATH = "config.json"

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized:
            return

        self._networks: Dict[str, NetworkConfig] = {}
        self.artifacts_path: Optional[str] = None
        self.artifacts_url: Optional[str] = None
        self.config_path = (
            config_path
            or os.environ.get(CONFIG_PATH_ENV)
            or self.DEFAULT_CONFIG_PATH
        )
        self._initialized = True

        # Auto-load from JSON if exists
        if os.path.exists(self.config_path):
            self.load_from_json()

    def add_network(self, network_name: str, network_config: NetworkConfig, save: bool = True):
        """
        Add or update a network configuration.

        Args:
            network_name: Unique identifier for the network (e.g., "alpha-goerli")
            network_config: NetworkConfig object with network details
            save: Whether to save to config.json immediately (default: True)
        """
        self._networks[network_name] = network_config

        if save:
            self.save_to_json()

    def get_network(self, network_name: str) -> NetworkConfig:
        """
        Get network configuration by name.

        Raises:
            KeyError: If network not found
        """
        if network_name not in self._networks:
            raise KeyError(f"Network '{network_name}' not configured")
        return self._networks[network_name]

    def get_url(self, network_name: str) -> str:
        """Get gateway / RPC URL for a network."""
        return self.get_network(network_name).url

    def get_chain_id(self, network_name: str) -> str:
        """Get the StarkNet chain id string for a network."""
        return self.get_network(network_name).starknet_chain_id

    def set_artifacts(self, artifacts_path: Optional[str] = None, artifacts_url: Optional[str] = None,
                      save: bool = True):
        """
        Set where account contract artifacts are cached and downloaded from.
        ``None`` keeps the built-in default.
        """
        self.artifacts_path = artifacts_path
        self.artifacts_url = artifacts_url

        if save:
            self.save_to_json()

    def has_network(self, network_name: str) -> bool:
        """Check if network is configured."""
        return network_name in self._networks

    def list_networks(self) -> list:
        """List all configured network names."""
        return list(self._networks.keys())

    def remove_network(self, network_name: str, save: bool = True):
        if network_name in self._networks:
            del self._networks[network_name]

            if save:
                self.save_to_json()

    # ============================================
    # JSON Persistence
    # ============================================

    def save_to_json(self, path: Optional[str] = None):
        """
        Save configuration to JSON file.

        Args:
            path: Custom path (uses self.config_path if not provided)
        """
        save_path = path or self.config_path

        config_data = {
            'networks': {
                name: network.to_dict()
                for name, network in self._networks.items()
            },
            'artifacts_path': self.artifacts_path,
            'artifacts_url': self.artifacts_url,
        }

        with open(save_path, 'w') as f:
            json.dump(config_data, f, indent=2)

    def load_from_json(self, path: Optional[str] = None):
        """
        Load configuration from JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        load_path = path or self.config_path

        if not os.path.exists(load_path):
            raise FileNotFoundError(f"Config file not found: {load_path}")

        with open(load_path, 'r') as f:
            config_data = json.load(f)

        # Clear existing networks
        self._networks.clear()

        for network_name, network_data in config_data.get('networks', {}).items():
            self._networks[network_name] = NetworkConfig.from_dict(network_data)

        self.artifacts_path = config_data.get('artifacts_path')
        self.artifacts_url = config_data.get('artifacts_url')

    def load_default_networks(self, save: bool = True):
        """
        Load the public StarkNet networks and a local devnet.

        Args:
            save: Whether to save to config.json after loading
        """
        self.add_network("alpha-goerli", NetworkConfig(
            url="https://alpha4.starknet.io",
            starknet_chain_id="SN_GOERLI",
            name="StarkNet Goerli Testnet"
        ), save=False)

        self.add_network("alpha-mainnet", NetworkConfig(
            url="https://alpha-mainnet.starknet.io",
            starknet_chain_id="SN_MAIN",
            name="StarkNet Mainnet"
        ), save=False)

        # devnet uses the testnet chain id
        self.add_network("integrated-devnet", NetworkConfig(
            url="http://127.0.0.1:5050",
            starknet_chain_id="SN_GOERLI",
            name="Integrated Devnet"
        ), save=False)

        if save:
            self.save_to_json()

    def __repr__(self):
        return f"<Config networks={list(self._networks.keys())} path={self.config_path}>"
