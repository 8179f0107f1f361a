"""
Local cache of account contract artifacts.

Layout::

    <artifacts_path>/<account type>/<version>/<name>.cairo/<name>.json
    <artifacts_path>/<account type>/<version>/<name>.cairo/<name>_abi.json

Missing files are downloaded from ``<base_url>/<account type>/<version>/<name>.cairo/``.
"""
import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import requests

from .errors import ArtifactNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACTS_PATH = os.path.join("starknet-artifacts", "account-contract-artifacts")
DEFAULT_ARTIFACTS_URL = (
    "https://raw.githubusercontent.com/Shard-Labs/starknet-hardhat-plugin/"
    "master/account-contract-artifacts"
)
ABI_SUFFIX = "_abi.json"
DOWNLOAD_TIMEOUT = 30


class ArtifactResolver:
    """Finds, and if necessary downloads, the artifacts of an account contract."""

    def __init__(
        self,
        artifacts_path: str = DEFAULT_ARTIFACTS_PATH,
        base_url: str = DEFAULT_ARTIFACTS_URL,
        session: Optional[requests.Session] = None
    ):
        self.artifacts_path = Path(artifacts_path)
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    def resolve(self, account_type: str, artifacts_name: str, version: str) -> Path:
        """
        Return the directory holding the artifacts of an account contract.

        Args:
            account_type: e.g. "OpenZeppelinAccount"
            artifacts_name: Contract name, e.g. "Account"
            version: Pinned version, e.g. "0.1.0"

        Raises:
            ArtifactNotFoundError: If a missing artifact cannot be downloaded
        """
        self._prune_other_versions(account_type, version)

        artifacts_base = f"{artifacts_name}.cairo"
        target_dir = self.artifacts_path / account_type / version / artifacts_base
        source_path = f"{account_type}/{version}/{artifacts_base}"

        for file_name in (f"{artifacts_name}.json", f"{artifacts_name}{ABI_SUFFIX}"):
            self._ensure_artifact(file_name, target_dir, source_path)

        return target_dir

    def _ensure_artifact(self, file_name: str, target_dir: Path, source_path: str):
        target = target_dir / file_name
        if target.exists():
            return

        url = f"{self.base_url}/{source_path}/{file_name}"
        logger.info(f"Downloading account artifact {url}")
        try:
            response = self.session.get(url, timeout=DOWNLOAD_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ArtifactNotFoundError(f"Cannot download {url}: {e}") from e

        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)

    def _prune_other_versions(self, account_type: str, version: str):
        # only the pinned version of an account type is kept
        type_dir = self.artifacts_path / account_type
        if not type_dir.is_dir():
            return

        for entry in type_dir.iterdir():
            if entry.name != version and entry.is_dir():
                logger.debug(f"Removing stale account artifacts {entry}")
                shutil.rmtree(entry)
