"""
Wallet class for managing account contracts across networks.
Integrates with KeyManager for the signer and guardian keys.
"""
from typing import Any, Callable, Dict, List, Optional, Type, Union
import json
import logging
import os

from .account import Account, AccountVariant, ArgentAccount, account_class_for
from .artifacts import ArtifactResolver, DEFAULT_ARTIFACTS_PATH, DEFAULT_ARTIFACTS_URL
from .config import Config
from .contract import StarknetRuntime, StringMap
from .felt import to_felt
from .keymanager.keyManager import KeyManager

logger = logging.getLogger(__name__)

RuntimeProvider = Callable[[str], StarknetRuntime]


class Wallet:
    """
    Wallet keeps the account contracts controlled by one KeyManager.

    The Wallet is designed to:
    - Deploy new accounts or bind to deployed ones, per network
    - Take the signer (and guardian) keys from an unlocked KeyManager
    - Persist account records; keys stay in the keystore and nonces on chain

    Usage:
        km = KeyManager()
        km.unlock(password)

        wallet = Wallet(key_manager=km, runtime_provider=get_runtime)
        account = await wallet.add_account("alpha-goerli", "OpenZeppelin", "0x...")
        tx_hash = await account.invoke(contract, "increase_balance", {"amount": 10})
    """

    def __init__(
        self,
        key_manager: KeyManager,
        runtime_provider: RuntimeProvider,
        resolver: Optional[ArtifactResolver] = None,
        wallet_name: str = "default",
        storage_path: Optional[str] = None
    ):
        """
        Args:
            key_manager: KeyManager holding the account keys
            runtime_provider: Returns the contract runtime of a network name
            resolver: Artifact resolver (built from Config if not provided)
            wallet_name: Unique name for this wallet
            storage_path: Path to persist wallet data (optional)
        """
        if not isinstance(key_manager, KeyManager):
            raise TypeError("key_manager must be a KeyManager instance")

        self.key_manager = key_manager
        self.runtime_provider = runtime_provider
        self.wallet_name = wallet_name
        self.storage_path = storage_path or f"wallet_{wallet_name}.json"

        # {network_name: [Account, ...]}
        self._accounts: Dict[str, List[Account]] = {}

        self._config = Config()
        self.resolver = resolver or ArtifactResolver(
            artifacts_path=self._config.artifacts_path or DEFAULT_ARTIFACTS_PATH,
            base_url=self._config.artifacts_url or DEFAULT_ARTIFACTS_URL,
        )

    # ============================================
    # Account Management
    # ============================================

    async def deploy_account(
        self,
        network_name: str,
        variant: Union[AccountVariant, str],
        deploy_options: Optional[StringMap] = None,
        save: bool = True
    ) -> Account:
        """
        Deploy a new account contract controlled by the KeyManager's keys.

        An Argent account uses the KeyManager's guardian key if it has one,
        otherwise a fresh guardian key that only lives in the returned account.

        Raises:
            PermissionError: If the KeyManager is locked
            ValueError: If the network is not configured or the variant unknown
        """
        account_class = account_class_for(variant)
        runtime, chain_id = self._network(network_name)
        signer = self.key_manager.signer_keys()

        account = await account_class.deploy_from_abi(
            runtime,
            self.resolver,
            chain_id=chain_id,
            private_key=signer.private_key,
            deploy_options=deploy_options,
            **self._guardian_kwargs(account_class)
        )
        self._register(network_name, account)

        if save:
            self.save()

        return account

    async def add_account(
        self,
        network_name: str,
        variant: Union[AccountVariant, str],
        address: str,
        save: bool = True
    ) -> Account:
        """
        Bind an already deployed account contract to this wallet.

        Raises:
            PermissionError: If the KeyManager is locked
            ValueError: If the network is not configured or the account already exists
            KeyMismatchError: If the KeyManager's keys do not control the contract
        """
        self._check_not_registered(network_name, address)
        account = await self._bind_account(network_name, variant, address)
        self._register(network_name, account)

        if save:
            self.save()

        return account

    async def _bind_account(self, network_name: str, variant: Union[AccountVariant, str], address: str) -> Account:
        account_class = account_class_for(variant)
        runtime, chain_id = self._network(network_name)
        signer = self.key_manager.signer_keys()

        return await account_class.get_account_from_address(
            address,
            signer.private_key,
            runtime,
            self.resolver,
            chain_id=chain_id,
            **self._guardian_kwargs(account_class)
        )

    def get_account(self, network_name: str, address: Optional[str] = None, index: int = 0) -> Account:
        """
        Get an account by network name and optional address or index.

        Raises:
            KeyError: If network or account not found
            IndexError: If index out of range
        """
        accounts = self._accounts.get(network_name)
        if not accounts:
            raise KeyError(
                f"No accounts for network '{network_name}'. "
                f"Available networks: {self.list_networks()}"
            )

        if address:
            for account in accounts:
                if _same_address(account.address, address):
                    return account
            raise KeyError(f"Account {address} not found on {network_name}")

        if index >= len(accounts):
            raise IndexError(
                f"Account index {index} out of range. "
                f"{network_name} has {len(accounts)} account(s)"
            )

        return accounts[index]

    def get_accounts(self, network_name: str) -> List[Account]:
        return self._accounts.get(network_name, [])

    def has_account(self, network_name: str) -> bool:
        return bool(self._accounts.get(network_name))

    def list_networks(self) -> List[str]:
        """List all networks with accounts in this wallet."""
        return [network for network, accounts in self._accounts.items() if accounts]

    def remove_account(self, network_name: str, address: Optional[str] = None, save: bool = True):
        """
        Remove an account from the wallet.

        Args:
            network_name: Network name
            address: Account address to remove (if None, removes all accounts on this network)
            save: Whether to save to JSON immediately
        """
        if network_name not in self._accounts:
            return

        if address:
            self._accounts[network_name] = [
                account for account in self._accounts[network_name]
                if not _same_address(account.address, address)
            ]
            if not self._accounts[network_name]:
                del self._accounts[network_name]
        else:
            del self._accounts[network_name]

        if save:
            self.save()

    # ============================================
    # Wallet State Persistence
    # ============================================

    def save(self, path: Optional[str] = None):
        """
        Save the account records to disk.

        Keys are not written here, the KeyManager keeps its own encrypted keystore.
        """
        save_path = path or self.storage_path

        wallet_data = {
            'wallet_name': self.wallet_name,
            'public_key': self.key_manager.public_key,
            'accounts': {
                network: [account.to_dict() for account in accounts]
                for network, accounts in self._accounts.items()
            }
        }

        with open(save_path, 'w') as f:
            json.dump(wallet_data, f, indent=2)

    async def load(self, path: Optional[str] = None):
        """
        Load account records from disk and bind each of them again.

        Raises:
            FileNotFoundError: If wallet file doesn't exist
            ValueError: If the wallet was saved for another signer key
            KeyMismatchError: If a stored account is no longer controlled by the keys
        """
        load_path = path or self.storage_path

        if not os.path.exists(load_path):
            raise FileNotFoundError(f"Wallet file not found: {load_path}")

        with open(load_path, 'r') as f:
            wallet_data = json.load(f)

        if wallet_data.get('public_key') != self.key_manager.public_key:
            raise ValueError(
                f"Wallet KeyManager mismatch. "
                f"Expected: {wallet_data.get('public_key')}, "
                f"Got: {self.key_manager.public_key}"
            )

        # the current accounts are only replaced once every record is bound
        loaded: Dict[str, List[Account]] = {}
        for network_name, records in wallet_data.get('accounts', {}).items():
            for record in records:
                _check_not_in(loaded.get(network_name, []), network_name, record['address'])
                account = await self._bind_account(network_name, record['variant'], record['address'])
                loaded.setdefault(network_name, []).append(account)

        self._accounts = loaded
        logger.info(f"Loaded wallet {self.wallet_name} with {self._count()} account(s)")

    # ============================================
    # Utility Methods
    # ============================================

    def summary(self) -> Dict[str, Any]:
        return {
            'wallet_name': self.wallet_name,
            'public_key': self.key_manager.public_key,
            'key_manager_unlocked': self.key_manager.unlocked,
            'accounts': {
                network: [account.to_dict() for account in accounts]
                for network, accounts in self._accounts.items()
            }
        }

    def _network(self, network_name: str):
        if not self._config.has_network(network_name):
            raise ValueError(f"Network '{network_name}' not configured. Add it to Config first")
        return self.runtime_provider(network_name), self._config.get_chain_id(network_name)

    def _guardian_kwargs(self, account_class: Type[Account]) -> Dict[str, str]:
        guardian = self.key_manager.guardian_keys()
        if issubclass(account_class, ArgentAccount) and guardian is not None:
            return {'guardian_private_key': guardian.private_key}
        return {}

    def _check_not_registered(self, network_name: str, address: str):
        _check_not_in(self._accounts.get(network_name, []), network_name, address)

    def _register(self, network_name: str, account: Account):
        self._check_not_registered(network_name, account.address)
        self._accounts.setdefault(network_name, []).append(account)
        logger.info(f"Added {account.ACCOUNT_TYPE_NAME} {account.address} on {network_name}")

    def _count(self) -> int:
        return sum(len(accounts) for accounts in self._accounts.values())

    def __repr__(self):
        return (
            f"<Wallet name={self.wallet_name} "
            f"total_accounts={self._count()} "
            f"networks={list(self._accounts.keys())}>"
        )


def _same_address(a: str, b: str) -> bool:
    return to_felt(a) == to_felt(b)


def _check_not_in(accounts: List[Account], network_name: str, address: str):
    for existing in accounts:
        if _same_address(existing.address, address):
            raise ValueError(
                f"Account {address} already exists on {network_name}. "
                f"Cannot add duplicate account."
            )
