"""Resolution of named networks into deployment targets."""

import logging
import os
import re
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from shipwright import config, evm
from shipwright.errors import (
    InvalidDeclarationError,
    MalformedSecretError,
    MissingCredentialsError,
    UnknownNetworkError,
)
from shipwright.models import (
    GAS_PRICE_DYNAMIC,
    KIND_ENDPOINT,
    KIND_MNEMONIC,
    KIND_PRIVATE_KEY,
    HDAccounts,
    NetworkDeclaration,
    NetworkTarget,
    SigningCredential,
)
from shipwright.secret_store import SecretSource

logger = logging.getLogger(__name__)

MISSING_SECRETS_ERROR = "error"
MISSING_SECRETS_SKIP = "skip"

_DECLARATION_KEYS = {"url", "url_env", "chain_id", "gas_price", "accounts"}
_HD_KEYS = {"mnemonic", "path", "initial_index", "count"}
_RAW_KEY_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_reference(network: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidDeclarationError(network, "accounts", "entries must be non-empty reference names")
    if _RAW_KEY_PATTERN.match(value) or len(value.split()) > 1:
        raise InvalidDeclarationError(
            network, "accounts", "must reference the secret store, not embed key material"
        )
    return value


def _parse_hd_accounts(network: str, raw: Mapping[str, Any]) -> HDAccounts:
    unknown = set(raw) - _HD_KEYS
    if unknown:
        raise InvalidDeclarationError(network, "accounts", f"has unknown keys: {', '.join(sorted(unknown))}")
    if "mnemonic" not in raw:
        raise InvalidDeclarationError(network, "accounts", "HD block needs a 'mnemonic' reference")

    hd = HDAccounts(mnemonic=_parse_reference(network, raw["mnemonic"]))
    path = raw.get("path", hd.path)
    initial_index = raw.get("initial_index", hd.initial_index)
    count = raw.get("count", hd.count)
    if not isinstance(path, str) or not path.startswith("m/"):
        raise InvalidDeclarationError(network, "accounts.path", "must be a derivation path like m/44'/60'/0'/0")
    if not _is_int(initial_index) or initial_index < 0:
        raise InvalidDeclarationError(network, "accounts.initial_index", "must be a non-negative integer")
    if not _is_int(count) or count < 1:
        raise InvalidDeclarationError(network, "accounts.count", "must be a positive integer")
    return HDAccounts(mnemonic=hd.mnemonic, path=path.rstrip("/"), initial_index=initial_index, count=count)


def parse_declaration(name: str, raw: Union[Mapping[str, Any], NetworkDeclaration]) -> NetworkDeclaration:
    """
    Validate one entry of the static network table.

    Args:
        name: Network name
        raw: Mapping with optional keys url, url_env, chain_id, gas_price and
            accounts, or an already parsed declaration

    Returns:
        The parsed declaration

    Raises:
        InvalidDeclarationError: If any field is invalid
    """
    if not isinstance(name, str) or not name:
        raise InvalidDeclarationError(str(name), "name", "must be a non-empty string")
    if isinstance(raw, NetworkDeclaration):
        if raw.name != name:
            raise InvalidDeclarationError(name, "name", f"does not match declaration name {raw.name!r}")
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidDeclarationError(name, "<entry>", "must be a mapping")

    unknown = set(raw) - _DECLARATION_KEYS
    if unknown:
        raise InvalidDeclarationError(name, "<entry>", f"has unknown keys: {', '.join(sorted(unknown))}")

    url = raw.get("url") or ""
    if not isinstance(url, str):
        raise InvalidDeclarationError(name, "url", "must be a string")

    url_env = raw.get("url_env") or config.endpoint_env_name(name)
    if not isinstance(url_env, str):
        raise InvalidDeclarationError(name, "url_env", "must be a variable name")

    chain_id = raw.get("chain_id")
    if chain_id is not None and (not _is_int(chain_id) or chain_id < 0):
        raise InvalidDeclarationError(name, "chain_id", "must be a non-negative integer")

    gas_price = raw.get("gas_price", GAS_PRICE_DYNAMIC)
    if gas_price in (None, "auto"):
        gas_price = GAS_PRICE_DYNAMIC
    if gas_price != GAS_PRICE_DYNAMIC and (not _is_int(gas_price) or gas_price <= 0):
        raise InvalidDeclarationError(name, "gas_price", "must be a positive integer (wei) or 'dynamic'")

    accounts = raw.get("accounts")
    if isinstance(accounts, Mapping):
        accounts = _parse_hd_accounts(name, accounts)
    elif isinstance(accounts, (list, tuple)):
        accounts = tuple(_parse_reference(name, ref) for ref in accounts)
    elif accounts is not None:
        raise InvalidDeclarationError(name, "accounts", "must be a list of references or an HD block")

    return NetworkDeclaration(
        name=name,
        url=url,
        url_env=url_env,
        chain_id=chain_id,
        gas_price=gas_price,
        accounts=accounts,
    )


class SignerAddresses:
    """Addresses of a target's signers, derived again on every iteration."""

    def __init__(self, credentials: Iterable[SigningCredential]):
        self._credentials = tuple(credentials)

    def __iter__(self) -> Iterator[str]:
        for credential in self._credentials:
            yield evm.credential_address(credential)

    def __len__(self) -> int:
        return len(self._credentials)

    def __repr__(self) -> str:
        return f"SignerAddresses({len(self._credentials)} signer(s))"


def list_signer_addresses(target: NetworkTarget) -> SignerAddresses:
    """Return the signer addresses of a target, in credential order."""
    return SignerAddresses(target.signing_credentials)


class NetworkResolver:
    """Maps network names to validated deployment targets.

    Precedence per field, highest first: environment override, static
    declaration, secret-store entry keyed by network name, default.
    """

    def __init__(
        self,
        networks: Mapping[str, Union[Mapping[str, Any], NetworkDeclaration]],
        secrets: Optional[SecretSource] = None,
        environ: Optional[Mapping[str, str]] = None,
        missing_secrets: str = MISSING_SECRETS_ERROR,
    ):
        """
        Initialize the resolver.

        Args:
            networks: Static network table, name -> declaration
            secrets: Loaded secret store (default: empty)
            environ: Environment snapshot (default: copy of os.environ)
            missing_secrets: "error" to fail on references absent from the
                secret store, "skip" to drop them

        Raises:
            InvalidDeclarationError: If a declaration is invalid
            MalformedSecretError: If the private key override is malformed or a
                referenced secret entry was rejected at load
        """
        if missing_secrets not in (MISSING_SECRETS_ERROR, MISSING_SECRETS_SKIP):
            raise ValueError(f"missing_secrets must be 'error' or 'skip', not {missing_secrets!r}")

        self._declarations = MappingProxyType(
            {name: parse_declaration(name, raw) for name, raw in networks.items()}
        )
        self._secrets = secrets if secrets is not None else SecretSource()
        self._environ = MappingProxyType(dict(os.environ if environ is None else environ))
        self._missing_secrets = missing_secrets
        self._key_override = self._load_key_override()
        self._check_references()

    @classmethod
    def from_config(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        secrets_path: Optional[str] = None,
        missing_secrets: str = MISSING_SECRETS_ERROR,
    ) -> "NetworkResolver":
        """
        Build a resolver for the networks declared in ``config.NETWORKS``.

        The secrets file is required only when ``secrets_path`` is given.
        """
        if environ is None:
            environ = config.load_environment()
        required = secrets_path is not None
        path = secrets_path if required else config.secrets_file_path(dict(environ))
        secrets = SecretSource.load(path, environ, required=required)
        return cls(config.NETWORKS, secrets, environ, missing_secrets)

    def _load_key_override(self) -> Optional[SigningCredential]:
        value = self._environ.get(config.PRIVATE_KEY_ENV)
        if not value:
            return None

        reference = f"env:{config.PRIVATE_KEY_ENV}"
        try:
            key = evm.normalize_private_key(value)
        except ValueError as e:
            raise MalformedSecretError(reference, f"is not a valid private key: {e}") from None
        logger.debug("Signer override set through %s", config.PRIVATE_KEY_ENV)
        return SigningCredential(reference=reference, kind=KIND_PRIVATE_KEY, secret=key)

    def _referenced_secrets(self, declaration: NetworkDeclaration) -> List[str]:
        names = [] if declaration.url else [f"{declaration.name}_url"]
        if self._key_override is not None:
            return names
        accounts = declaration.accounts
        if isinstance(accounts, HDAccounts):
            names.append(accounts.mnemonic)
        elif accounts is not None:
            names.extend(accounts)
        else:
            names.append(declaration.name)
        return names

    def _check_references(self) -> None:
        for declaration in self._declarations.values():
            for name in self._referenced_secrets(declaration):
                self._secrets.check(name, network=declaration.name)

    def networks(self) -> List[str]:
        """Return declared network names in declaration order."""
        return list(self._declarations)

    def has_network(self, network_name: str) -> bool:
        return network_name in self._declarations

    def declaration(self, network_name: str) -> NetworkDeclaration:
        """Return the parsed static declaration of a network."""
        if not isinstance(network_name, str) or network_name not in self._declarations:
            raise UnknownNetworkError(str(network_name), self.networks())
        return self._declarations[network_name]

    def resolve(self, network_name: str, require_signer: bool = False) -> NetworkTarget:
        """
        Resolve a network name into a deployment target.

        Args:
            network_name: Declared network name, matched case-sensitively
            require_signer: Fail if no signing credential resolves

        Returns:
            Fully populated NetworkTarget

        Raises:
            UnknownNetworkError: If the network is not declared
            MissingCredentialsError: If require_signer is set and no signer resolved
            MalformedSecretError: If a referenced secret is missing or malformed
        """
        declaration = self.declaration(network_name)
        target = NetworkTarget(
            name=declaration.name,
            rpc_endpoint=self._resolve_endpoint(declaration),
            chain_id=declaration.chain_id,
            gas_price=declaration.gas_price,
            signing_credentials=self._resolve_credentials(declaration),
        )

        if require_signer and not target.has_signer:
            raise MissingCredentialsError(target.name)

        logger.debug(
            "Resolved network %r: chain id %s, %d signer(s) [%s]",
            target.name,
            "unspecified" if target.chain_id is None else target.chain_id,
            len(target.signing_credentials),
            ", ".join(c.reference for c in target.signing_credentials),
        )
        return target

    def resolve_all(self, require_signer: bool = False) -> Dict[str, NetworkTarget]:
        """Resolve every declared network, failing on the first problem."""
        return {name: self.resolve(name, require_signer) for name in self._declarations}

    def _resolve_endpoint(self, declaration: NetworkDeclaration) -> str:
        override = self._environ.get(declaration.url_env)
        if override:
            logger.debug("Network %r: endpoint from %s", declaration.name, declaration.url_env)
            return override
        if declaration.url:
            return declaration.url

        reference = f"{declaration.name}_url"
        if reference in self._secrets:
            if self._secrets.kind(reference) != KIND_ENDPOINT:
                raise MalformedSecretError(reference, "is not an endpoint URL", network=declaration.name)
            logger.debug("Network %r: endpoint from secret %r", declaration.name, reference)
            return self._secrets.get(reference)
        return ""

    def _resolve_credentials(self, declaration: NetworkDeclaration) -> Tuple[SigningCredential, ...]:
        # An explicit override replaces the declared signers
        if self._key_override is not None:
            return (self._key_override,)

        accounts = declaration.accounts
        if isinstance(accounts, HDAccounts):
            return self._derive_hd(declaration.name, accounts)
        if accounts is not None:
            credentials: List[SigningCredential] = []
            for reference in accounts:
                credentials.extend(self._lookup(declaration.name, reference))
            return tuple(credentials)

        if declaration.name in self._secrets:
            return self._lookup(declaration.name, declaration.name)
        return ()

    def _secret(self, network: str, reference: str) -> Optional[str]:
        self._secrets.check(reference, network=network)
        value = self._secrets.get(reference)
        if value is None:
            if self._missing_secrets == MISSING_SECRETS_SKIP:
                logger.warning("Network %r: secret %r not found, skipping signer", network, reference)
                return None
            raise MalformedSecretError(reference, "is not present in the secret store", network=network)
        return value

    def _lookup(self, network: str, reference: str) -> Tuple[SigningCredential, ...]:
        value = self._secret(network, reference)
        if value is None:
            return ()

        kind = self._secrets.kind(reference)
        if kind == KIND_PRIVATE_KEY:
            return (SigningCredential(reference=reference, kind=kind, secret=value),)
        if kind == KIND_MNEMONIC:
            return self._derive_hd(network, HDAccounts(mnemonic=reference))
        raise MalformedSecretError(reference, "holds an endpoint URL, not signing material", network=network)

    def _derive_hd(self, network: str, accounts: HDAccounts) -> Tuple[SigningCredential, ...]:
        phrase = self._secret(network, accounts.mnemonic)
        if phrase is None:
            return ()
        if self._secrets.kind(accounts.mnemonic) != KIND_MNEMONIC:
            raise MalformedSecretError(accounts.mnemonic, "is not a mnemonic phrase", network=network)

        stop = accounts.initial_index + accounts.count
        return tuple(
            SigningCredential(
                reference=f"{accounts.mnemonic}/{index}",
                kind=KIND_MNEMONIC,
                secret=phrase,
                derivation_path=f"{accounts.path}/{index}",
            )
            for index in range(accounts.initial_index, stop)
        )
