"""
shipwright: network, signer and compiler configuration for contract deployments
"""

from importlib.metadata import PackageNotFoundError, version

from .errors import (
    InvalidDeclarationError,
    MalformedSecretError,
    MissingCredentialsError,
    SecretsFileNotFoundError,
    ShipwrightError,
    UnknownNetworkError,
)
from .models import GAS_PRICE_DYNAMIC, HDAccounts, NetworkDeclaration, NetworkTarget, SigningCredential
from .resolver import NetworkResolver, SignerAddresses, list_signer_addresses
from .secret_store import SecretSource

try:
    __version__ = version("shipwright")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "NetworkResolver",
    "NetworkTarget",
    "NetworkDeclaration",
    "HDAccounts",
    "SigningCredential",
    "SecretSource",
    "SignerAddresses",
    "list_signer_addresses",
    "GAS_PRICE_DYNAMIC",
    "ShipwrightError",
    "UnknownNetworkError",
    "MissingCredentialsError",
    "MalformedSecretError",
    "InvalidDeclarationError",
    "SecretsFileNotFoundError",
]
