"""Secret material for signing credentials, loaded once per process."""

import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Union

from shipwright import evm
from shipwright.errors import MalformedSecretError, SecretsFileNotFoundError
from shipwright.models import DEFAULT_HD_PATH, KIND_ENDPOINT, KIND_MNEMONIC, KIND_PRIVATE_KEY

logger = logging.getLogger(__name__)

ENV_PREFIX = "SHIPWRIGHT_SECRET_"

_ENDPOINT_SCHEMES = ("http://", "https://", "ws://", "wss://")
_MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)


def classify_secret(value: str) -> str:
    """Guess the kind of a secret from its shape."""
    if value.startswith(_ENDPOINT_SCHEMES):
        return KIND_ENDPOINT
    if len(value.split()) > 1:
        return KIND_MNEMONIC
    return KIND_PRIVATE_KEY


def _validate(name: str, value: object) -> tuple[str, str]:
    """Return ``(kind, normalized value)`` or raise MalformedSecretError."""
    if not isinstance(value, str):
        raise MalformedSecretError(name, "must be a string")
    value = value.strip()
    if not value:
        raise MalformedSecretError(name, "is empty")

    kind = classify_secret(value)
    if kind == KIND_PRIVATE_KEY:
        try:
            return kind, evm.normalize_private_key(value)
        except ValueError as e:
            raise MalformedSecretError(name, f"is not a valid private key: {e}") from None

    if kind == KIND_MNEMONIC:
        words = value.split()
        if len(words) not in _MNEMONIC_WORD_COUNTS:
            raise MalformedSecretError(name, f"has {len(words)} words, not a valid mnemonic length")
        try:
            evm.derive_account_from_mnemonic(value, f"{DEFAULT_HD_PATH}/0")
        except ValueError:
            raise MalformedSecretError(name, "is not a valid mnemonic phrase") from None
        return kind, " ".join(words)

    return kind, value


class SecretSource:
    """Immutable mapping from credential reference name to secret material.

    Every entry is validated when the source is built. Entries with a bad
    shape are held back with the reason; reading one raises
    MalformedSecretError, and the resolver checks the entries it references
    when it is built, so a bad key is reported before any network is
    resolved while unrelated entries do no harm. Names match
    case-insensitively when there is no exact match. ``repr`` never shows
    values.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None, origin: str = "<memory>"):
        self.origin = origin
        validated: Dict[str, str] = {}
        kinds: Dict[str, str] = {}
        rejected: Dict[str, str] = {}
        for name, value in (values or {}).items():
            try:
                kinds[name], validated[name] = _validate(name, value)
            except MalformedSecretError as e:
                rejected[name] = e.reason
                logger.debug("Secret %r from %s not usable: %s", name, origin, e.reason)
        self._set(validated, kinds, rejected)
        logger.debug("Loaded %d secret(s) from %s: %s", len(validated), origin, ", ".join(validated))

    def _set(self, values: Dict[str, str], kinds: Dict[str, str], rejected: Dict[str, str]) -> None:
        self._values = MappingProxyType(values)
        self._kinds = MappingProxyType(kinds)
        self._rejected = MappingProxyType(rejected)
        self._folded = MappingProxyType({name.lower(): name for name in [*values, *rejected]})

    @classmethod
    def from_file(cls, path: Union[str, Path], required: bool = True) -> "SecretSource":
        """
        Load secrets from a JSON file mapping names to strings.

        Args:
            path: Path of the secrets file
            required: Raise if the file does not exist instead of returning
                an empty source

        Raises:
            SecretsFileNotFoundError: If required and the file is missing
            MalformedSecretError: If the file is not a JSON object
        """
        path = Path(path)
        if not path.exists():
            if required:
                raise SecretsFileNotFoundError(f"Secrets file not found at {path}")
            logger.info("No secrets file at %s, continuing without stored secrets", path)
            return cls(origin=str(path))

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedSecretError(str(path), f"is not valid JSON (line {e.lineno})") from None

        if not isinstance(data, dict):
            raise MalformedSecretError(str(path), "must contain a JSON object")
        return cls(data, origin=str(path))

    @classmethod
    def from_environ(
        cls, environ: Optional[Mapping[str, str]] = None, prefix: str = ENV_PREFIX
    ) -> "SecretSource":
        """
        Collect secrets from ``<prefix><NAME>`` environment variables.

        Entries are named by the lower-cased remainder of the variable name;
        lookups fall back to case-insensitive matching, so
        ``SHIPWRIGHT_SECRET_PRIVATEKEY`` also serves a ``privateKey`` reference.
        """
        if environ is None:
            environ = os.environ
        values = {
            key[len(prefix):].lower(): value
            for key, value in environ.items()
            if key.startswith(prefix) and len(key) > len(prefix)
        }
        return cls(values, origin="environment")

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        environ: Optional[Mapping[str, str]] = None,
        required: bool = False,
    ) -> "SecretSource":
        """Load the secrets file, then let prefixed environment variables win."""
        file_source = cls.from_file(path, required=required)
        env_source = cls.from_environ(environ)
        return file_source.merged(env_source)

    def merged(self, other: "SecretSource") -> "SecretSource":
        """Return a new source where entries of ``other`` take precedence."""
        values = dict(self._values)
        kinds = dict(self._kinds)
        rejected = dict(self._rejected)
        for name in other:
            # "privatekey" from the environment replaces "privateKey" from a file
            for existing in [n for n in [*values, *rejected] if n.lower() == name.lower()]:
                values.pop(existing, None)
                kinds.pop(existing, None)
                rejected.pop(existing, None)
        values.update(other._values)
        kinds.update(other._kinds)
        rejected.update(other._rejected)

        source = SecretSource(origin=f"{self.origin}+{other.origin}")
        source._set(values, kinds, rejected)
        return source

    def _name(self, name: object) -> Optional[str]:
        if not isinstance(name, str):
            return None
        if name in self._values or name in self._rejected:
            return name
        return self._folded.get(name.lower())

    def check(self, name: str, network: Optional[str] = None) -> None:
        """
        Raise if the entry ``name`` exists but was rejected at load.

        Raises:
            MalformedSecretError: With the reason, never the value
        """
        found = self._name(name)
        if found in self._rejected:
            raise MalformedSecretError(found, self._rejected[found], network=network)

    def get(self, name: str) -> Optional[str]:
        self.check(name)
        found = self._name(name)
        return None if found is None else self._values[found]

    def kind(self, name: str) -> Optional[str]:
        self.check(name)
        found = self._name(name)
        return None if found is None else self._kinds[found]

    def names(self) -> List[str]:
        return list(self._values)

    def rejected(self) -> List[str]:
        """Names of entries that failed validation."""
        return list(self._rejected)

    def close(self) -> None:
        """Drop all secret material."""
        self._set({}, {}, {})

    def __enter__(self) -> "SecretSource":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __contains__(self, name: object) -> bool:
        return self._name(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter([*self._values, *self._rejected])

    def __len__(self) -> int:
        return len(self._values) + len(self._rejected)

    def __repr__(self) -> str:
        return (
            f"SecretSource(origin={self.origin!r}, names={sorted(self._values)!r}, "
            f"rejected={sorted(self._rejected)!r})"
        )
