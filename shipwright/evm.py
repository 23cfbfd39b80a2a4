"""EVM key and address operations."""

from typing import Any, Dict

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_keys import keys
from web3 import Web3

from shipwright.models import (
    GAS_PRICE_DYNAMIC,
    KIND_MNEMONIC,
    Credentials,
    GasPricePolicy,
    NetworkTarget,
    SigningCredential,
)

# Mnemonic derivation is gated behind an explicit opt-in in eth-account
Account.enable_unaudited_hdwallet_features()


def normalize_private_key(privkey_str: str) -> str:
    """
    Validate a hex private key and return it in ``0x``-prefixed lowercase form.

    Args:
        privkey_str: Private key in hex, with or without ``0x``

    Returns:
        Normalized private key

    Raises:
        ValueError: If the key is not 32 bytes of hex
    """
    value = privkey_str.strip()
    if value[:2].lower() == "0x":
        value = value[2:]

    try:
        private_key_bytes = bytes.fromhex(value)
    except ValueError:
        raise ValueError("Private key must be hex encoded.") from None

    if len(private_key_bytes) != 32:
        raise ValueError("Private key must be 32 bytes (64 hex characters).")

    return "0x" + private_key_bytes.hex()


def derive_address_from_private_key(privkey_str: str) -> Dict[str, str]:
    """Derive public key and address from an EVM private key."""
    private_key_bytes = bytes.fromhex(normalize_private_key(privkey_str)[2:])

    private_key_obj = keys.PrivateKey(private_key_bytes)
    public_key_obj = private_key_obj.public_key
    account = Account.from_key(private_key_bytes)

    return {
        "private_key": "0x" + private_key_bytes.hex(),
        "public_key": public_key_obj.to_hex(),
        "address": account.address,
    }


def derive_account_from_mnemonic(mnemonic: str, account_path: str) -> LocalAccount:
    """
    Derive a BIP-44 account from a mnemonic phrase.

    Args:
        mnemonic: Space separated mnemonic phrase
        account_path: Full derivation path, e.g. ``m/44'/60'/0'/0/0``

    Raises:
        ValueError: If the phrase or path is invalid
    """
    try:
        return Account.from_mnemonic(" ".join(mnemonic.split()), account_path=account_path)
    except Exception as e:
        raise ValueError(f"Cannot derive account at {account_path}: {e}") from e


def credential_private_key(credential: SigningCredential) -> str:
    """Return the hex private key behind a signing credential."""
    if credential.kind == KIND_MNEMONIC:
        account = derive_account_from_mnemonic(credential.secret, credential.derivation_path)
        return "0x" + bytes(account.key).hex()
    return normalize_private_key(credential.secret)


def credential_address(credential: SigningCredential) -> str:
    """Return the checksummed address of a signing credential."""
    if credential.kind == KIND_MNEMONIC:
        return derive_account_from_mnemonic(credential.secret, credential.derivation_path).address
    return Account.from_key(normalize_private_key(credential.secret)).address


def generate_credentials() -> Credentials:
    """Generate EVM credentials (secp256k1)."""
    account = Account.create()
    key_hex = "0x" + bytes(account.key).hex()
    public_key_hex = keys.PrivateKey(bytes(account.key)).public_key.to_hex()

    return Credentials(
        variant="secp256k1",
        private_key=key_hex,
        public_key=public_key_hex,
        address=account.address,
    )


def format_gas_price(policy: GasPricePolicy) -> str:
    """Return a human readable gas price, e.g. ``2 gwei``."""
    if policy == GAS_PRICE_DYNAMIC:
        return "dynamic (estimated by node)"
    gwei = Web3.from_wei(int(policy), "gwei")
    return f"{gwei.normalize():f} gwei"


def provider_config(target: NetworkTarget) -> Dict[str, Any]:
    """
    Return a target in the shape a Hardhat-style deployer expects.

    The result carries private keys and must not be logged.

    Args:
        target: Resolved network target

    Returns:
        Dictionary with ``url``, ``gasPrice``, ``accounts`` and, when
        specified, ``chainId``
    """
    config: Dict[str, Any] = {
        "url": target.rpc_endpoint,
        "gasPrice": "auto" if target.uses_dynamic_gas_price else target.gas_price,
        "accounts": [credential_private_key(c) for c in target.signing_credentials],
    }
    if target.chain_id is not None:
        config["chainId"] = target.chain_id
    return config


def build_web3(target: NetworkTarget) -> Web3:
    """
    Build a Web3 handle for a target without connecting to it.

    Args:
        target: Resolved network target

    Raises:
        ValueError: If the target has no HTTP endpoint
    """
    if not target.is_usable:
        raise ValueError(f"Network {target.name!r} has no RPC endpoint")

    if not target.rpc_endpoint.startswith(("http://", "https://")):
        raise ValueError(f"Network {target.name!r} endpoint is not an HTTP URL")

    return Web3(Web3.HTTPProvider(target.rpc_endpoint))
