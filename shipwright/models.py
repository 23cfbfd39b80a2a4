"""Data models for Shipwright."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

GAS_PRICE_DYNAMIC = "dynamic"

# Either a fixed price in wei or GAS_PRICE_DYNAMIC
GasPricePolicy = Union[int, str]

KIND_PRIVATE_KEY = "private_key"
KIND_MNEMONIC = "mnemonic"
KIND_ENDPOINT = "endpoint"

DEFAULT_HD_PATH = "m/44'/60'/0'/0"


@dataclass
class Credentials:
    """Freshly generated key material."""
    variant: str
    private_key: str
    public_key: str
    address: str


@dataclass(frozen=True)
class HDAccounts:
    """Accounts derived from a mnemonic held in the secret store."""
    mnemonic: str  # secret-store reference, not the phrase itself
    path: str = DEFAULT_HD_PATH
    initial_index: int = 0
    count: int = 20


@dataclass(frozen=True)
class NetworkDeclaration:
    """A parsed entry of the static network table."""
    name: str
    url: str = ""
    url_env: Optional[str] = None
    chain_id: Optional[int] = None
    gas_price: GasPricePolicy = GAS_PRICE_DYNAMIC
    # None means the declaration says nothing about accounts
    accounts: Union[Tuple[str, ...], HDAccounts, None] = None


@dataclass(frozen=True)
class SigningCredential:
    """One signer of a resolved target.

    ``reference`` is safe to display. ``secret`` holds the private key or the
    mnemonic phrase and is kept out of ``repr``.
    """
    reference: str
    kind: str
    secret: str = field(repr=False)
    derivation_path: Optional[str] = None


@dataclass(frozen=True)
class NetworkTarget:
    """Everything a deployer needs to talk to one network."""
    name: str
    rpc_endpoint: str
    chain_id: Optional[int]
    gas_price: GasPricePolicy
    signing_credentials: Tuple[SigningCredential, ...] = ()

    @property
    def is_usable(self) -> bool:
        """Whether the target has an endpoint to talk to."""
        return bool(self.rpc_endpoint)

    @property
    def has_signer(self) -> bool:
        return len(self.signing_credentials) > 0

    @property
    def uses_dynamic_gas_price(self) -> bool:
        return self.gas_price == GAS_PRICE_DYNAMIC

    def describe(self) -> Dict[str, Any]:
        """Return a display-safe view listing credential references only."""
        return {
            "name": self.name,
            "url": self.rpc_endpoint,
            "chainId": self.chain_id,
            "gasPrice": self.gas_price,
            "accounts": [credential.reference for credential in self.signing_credentials],
        }

