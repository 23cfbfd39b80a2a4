"""Shared pytest fixtures for shipwright tests."""

import json
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from shipwright import config
from shipwright.resolver import NetworkResolver
from shipwright.secret_store import SecretSource

# Default Hardhat development accounts, derived from HARDHAT_MNEMONIC at m/44'/60'/0'/0/i
HARDHAT_MNEMONIC = "test test test test test test test test test test test junk"
HARDHAT_ACCOUNTS: List[Tuple[str, str]] = [
    (
        "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
        "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    ),
    (
        "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
        "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    ),
    (
        "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
        "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    ),
]


@pytest.fixture
def hardhat_accounts() -> List[Tuple[str, str]]:
    """Return (private key, address) pairs of the Hardhat dev accounts."""
    return list(HARDHAT_ACCOUNTS)


@pytest.fixture
def hardhat_mnemonic() -> str:
    return HARDHAT_MNEMONIC


@pytest.fixture
def secret_values(hardhat_accounts) -> Dict[str, str]:
    """Secrets covering every reference in config.NETWORKS."""
    return {
        "privatekey": hardhat_accounts[0][0],
        "qa_deployer": hardhat_accounts[1][0],
        "qa_operator": hardhat_accounts[2][0],
    }


@pytest.fixture
def secrets(secret_values: Dict[str, str]) -> SecretSource:
    return SecretSource(secret_values, origin="test")


@pytest.fixture
def secrets_file(tmp_path: Path, secret_values: Dict[str, str]) -> Path:
    """Write the test secrets to a JSON file."""
    path = tmp_path / "secrets.json"
    with open(path, "w") as f:
        json.dump(secret_values, f, indent=2)
    return path


@pytest.fixture
def resolver(secrets: SecretSource) -> NetworkResolver:
    """Resolver over the declared networks with no environment overrides."""
    return NetworkResolver(config.NETWORKS, secrets, environ={})
