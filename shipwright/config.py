"""
Configuration module for Shipwright.
Declares the compiler settings, target networks and plugin settings of the
toolchain. Environment variables are loaded from a .env file on request.
"""

import copy
import os
import re
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv

PRIVATE_KEY_ENV = "PRIVATE_KEY"
SECRETS_FILE_ENV = "SHIPWRIGHT_SECRETS_FILE"
DEFAULT_SECRETS_FILE = "secrets.json"


def load_environment(dotenv_path: Optional[str] = None) -> Dict[str, str]:
    """
    Load a .env file into the process environment and return a snapshot.

    Variables that are already set are not overridden.

    Args:
        dotenv_path: Path of the .env file (default: the nearest .env found
            from the working directory upwards)

    Returns:
        Copy of the environment after loading
    """
    if dotenv_path is None:
        dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)
    return dict(os.environ)


def get_env(environ: Dict[str, str], key: str, default: str) -> str:
    """Get environment variable with fallback to default."""
    value = environ.get(key)
    return value if value else default


def endpoint_env_name(network: str) -> str:
    """Name of the variable that overrides a network's RPC endpoint, e.g. ROPSTEN_URL."""
    return re.sub(r"[^A-Z0-9]", "_", network.upper()) + "_URL"


def secrets_file_path(environ: Dict[str, str]) -> str:
    """Path of the secrets file, overridable through SHIPWRIGHT_SECRETS_FILE."""
    return get_env(environ, SECRETS_FILE_ENV, DEFAULT_SECRETS_FILE)


# Compiler selection
SOLIDITY: Dict[str, Any] = {
    "version": "0.8.4",
    "settings": {
        "optimizer": {
            "enabled": True,
            "runs": 1000,
        },
    },
}


# Target networks. Accounts are references into the secret store, never key
# material. Endpoints can be overridden with <NETWORK>_URL.
NETWORKS: Dict[str, Dict[str, Any]] = {
    "ropsten": {
        "url": "",
    },
    "qa": {
        "url": "http://192.168.1.9:8545/",
        "chain_id": 31338,
        "gas_price": 2000000000,
        "accounts": ["qa_deployer", "qa_operator"],
    },
    "localhost": {
        "url": "http://localhost:8545/",
        "chain_id": 31337,
        "gas_price": 2000000000,
        "accounts": ["privatekey"],
    },
    "klaytn": {
        "url": "https://api.baobab.klaytn.net:8651",
        "chain_id": 1001,
        "gas_price": 250000000000,
        "accounts": ["privatekey"],
    },
}


# Plugin settings, consumed by external tools through these fixed keys
GAS_REPORTER: Dict[str, Any] = {
    "enabled": True,
    "currency": "USD",
}

ETHERSCAN: Dict[str, Any] = {
    "api_key_env": "ETHERSCAN_API_KEY",
}

CONTRACT_SIZER: Dict[str, Any] = {
    "alpha_sort": True,
    "disambiguate_paths": False,
    "run_on_compile": True,
    "strict": True,
}

ABI_EXPORTER: Dict[str, Any] = {
    "path": "./abi",
    "run_on_compile": True,
    "format": "json",
}

DOCGEN: Dict[str, Any] = {
    "pages": "files",
}

PLUGINS: Dict[str, Dict[str, Any]] = {
    "gas_reporter": GAS_REPORTER,
    "etherscan": ETHERSCAN,
    "contract_sizer": CONTRACT_SIZER,
    "abi_exporter": ABI_EXPORTER,
    "docgen": DOCGEN,
}


def get_plugin_settings(
    name: str, environ: Optional[Dict[str, str]] = None
) -> Optional[Dict[str, Any]]:
    """
    Get the settings of a plugin with environment toggles applied.

    Args:
        name: Plugin name (e.g., "gas_reporter", "abi_exporter")
        environ: Environment snapshot (default: process environment)

    Returns:
        Copy of the plugin settings, or None if the plugin is unknown
    """
    settings = PLUGINS.get(name)
    if settings is None:
        return None
    if environ is None:
        environ = dict(os.environ)

    settings = copy.deepcopy(settings)
    if name == "gas_reporter" and "REPORT_GAS" in environ:
        settings["enabled"] = environ["REPORT_GAS"].lower() not in ("", "0", "false", "no")
    if name == "etherscan":
        settings["api_key"] = environ.get(settings["api_key_env"]) or None
    return settings


def describe_settings(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Return compiler and plugin settings with credentials masked."""
    plugins = {name: get_plugin_settings(name, environ) for name in PLUGINS}
    if plugins["etherscan"]["api_key"]:
        plugins["etherscan"]["api_key"] = "********"
    return {
        "solidity": copy.deepcopy(SOLIDITY),
        "plugins": plugins,
    }


def list_networks() -> list[str]:
    """List all declared network names."""
    return list(NETWORKS.keys())


def list_plugins() -> list[str]:
    """List all configured plugin names."""
    return list(PLUGINS.keys())
