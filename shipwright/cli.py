"""Command line interface for Shipwright."""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from shipwright import config, evm, utils
from shipwright.errors import ShipwrightError
from shipwright.models import Credentials, NetworkTarget
from shipwright.resolver import (
    MISSING_SECRETS_ERROR,
    MISSING_SECRETS_SKIP,
    NetworkResolver,
    list_signer_addresses,
)

logger = logging.getLogger(__name__)


class ShipwrightCLI:
    """Interactive and one-shot commands over a network resolver."""

    def __init__(self, resolver: NetworkResolver, environ: Optional[Mapping[str, str]] = None) -> None:
        self.resolver = resolver
        self.environ = dict(environ) if environ is not None else None
        self.actions: Dict[str, Tuple[str, Callable[[], None]]] = {
            "1": ("List networks", self.list_networks),
            "2": ("Show network target", self.show_network_menu),
            "3": ("List signer accounts", self.list_accounts_menu),
            "4": ("Check all networks", self.check_networks),
            "5": ("Show compiler and plugin settings", self.show_settings),
            "6": ("Generate private key", self.generate_private_key),
            "7": ("Get Address from Private key", self.get_address_from_private_key),
            "0": ("Exit", self.exit_program),
        }
        self.should_exit = False

    def run(self) -> None:
        """Run the interactive main loop."""
        utils.print_banner()

        while not self.should_exit:
            try:
                choice = self.prompt_main_menu()
                action = self.actions.get(choice)
                if action:
                    label, callback = action
                    utils.section_header(label)
                    try:
                        callback()
                    except ShipwrightError as e:
                        utils.error(str(e))
                    except KeyboardInterrupt:
                        utils.section_footer("Interrupted. Returning to main menu.")
                else:
                    utils.warn(f"Invalid choice: {choice!r}")
            except KeyboardInterrupt:
                utils.section_footer("Interrupted. Returning to main menu.")
            except EOFError:
                print("\nGoodbye!")
                break

    def prompt_main_menu(self) -> str:
        """Prompt for main menu choice."""
        menu_items = {key: label for key, (label, _) in self.actions.items()}
        utils.print_menu("Shipwright Main Menu", menu_items)
        return input("Choose an option: ").strip()

    def prompt_choice(self, title: str, options: List[str]) -> str:
        """Prompt user to choose from a list of options."""
        options_map = {str(index): option for index, option in enumerate(options, start=1)}

        while True:
            utils.print_menu(title, list(options_map.items()))
            choice = input("Choose an option: ").strip()
            if not choice:
                continue
            if choice in options_map:
                return options_map[choice]
            if choice in options:
                return choice
            utils.warn(f"Invalid choice: {choice!r}. Please try again.")

    def prompt_network(self) -> str:
        return self.prompt_choice("Select a network", self.resolver.networks())

    # Commands

    def list_networks(self) -> None:
        """Print declared networks with their endpoints."""
        for name in self.resolver.networks():
            declaration = self.resolver.declaration(name)
            chain = "?" if declaration.chain_id is None else declaration.chain_id
            endpoint = declaration.url or f"${declaration.url_env}"
            print(f"{utils.bold(name):<24} chain {chain:<8} {endpoint}")

    def show_network(self, network: str, as_json: bool = False) -> None:
        """Print the resolved target of a network without secret material."""
        target = self.resolver.resolve(network)
        if as_json:
            print(json.dumps(target.describe(), indent=2))
            return
        self.print_target(target)

    def show_network_menu(self) -> None:
        self.show_network(self.prompt_network())

    def list_accounts(self, network: str) -> int:
        """Print the signer addresses of a network, one per line."""
        target = self.resolver.resolve(network)
        addresses = list_signer_addresses(target)
        if len(addresses) == 0:
            utils.warn(f"Network {network!r} has no signing credentials.")
            return 0
        for address in addresses:
            print(address)
        return len(addresses)

    def list_accounts_menu(self) -> None:
        self.list_accounts(self.prompt_network())

    def check_networks(self, require_signer: bool = False) -> bool:
        """Resolve every declared network and report problems.

        Returns:
            True if every network resolved
        """
        healthy = True
        for name in self.resolver.networks():
            try:
                target = self.resolver.resolve(name, require_signer=require_signer)
            except ShipwrightError as e:
                utils.error(str(e))
                healthy = False
                continue

            if not target.is_usable:
                declaration = self.resolver.declaration(name)
                utils.warn(f"{name}: no RPC endpoint (set {declaration.url_env})")
            else:
                utils.success(f"{name}: {len(target.signing_credentials)} signer(s)")
        return healthy

    def show_settings(self) -> None:
        """Print compiler and plugin settings."""
        print(json.dumps(config.describe_settings(self.environ), indent=2))

    def generate_private_key(self) -> None:
        """Generate a new EVM private key."""
        print_credentials(evm.generate_credentials())

    def get_address_from_private_key(self) -> None:
        """Get address from a private key entered without echo."""
        privkey_str = getpass.getpass("Enter private key (hex format, with or without 0x): ").strip()
        if not privkey_str:
            utils.warn("Private key is required.")
            return
        print_address(privkey_str)

    def exit_program(self) -> None:
        """Exit the program."""
        print("\nExiting Shipwright. Goodbye!")
        self.should_exit = True

    # Output

    def print_target(self, target: NetworkTarget) -> None:
        """Print target details, with credential references instead of keys."""
        print()
        print(f"[{target.name}] Network Target")
        utils.field("RPC endpoint", target.rpc_endpoint or "(not set)")
        utils.field("Chain ID", "unspecified" if target.chain_id is None else target.chain_id)
        utils.field("Gas price", evm.format_gas_price(target.gas_price))
        if not target.signing_credentials:
            utils.field("Signers", "none")
            return
        utils.field("Signers", len(target.signing_credentials))
        addresses = list_signer_addresses(target)
        for index, (credential, address) in enumerate(zip(target.signing_credentials, addresses)):
            print(f"  {index}. {credential.reference:<24} {utils.bold_cyan(address)}")


def print_credentials(credentials: Credentials) -> None:
    """Print freshly generated key material."""
    print()
    print("[EVM] Key Material")
    print(f"Type: {credentials.variant}")
    print(f"Private key: {credentials.private_key}")
    print(f"Public key:  {credentials.public_key}")
    print(f"Address:     {credentials.address}")
    print(utils.bold_red("Store the private key in the secrets file; it is not saved anywhere."))


def print_address(privkey_str: str) -> bool:
    """Print public key and address of a private key."""
    try:
        address_info = evm.derive_address_from_private_key(privkey_str)
    except ValueError as e:
        utils.error(str(e))
        return False
    print()
    print(f"Public key:  {address_info['public_key']}")
    print(f"Address:     {address_info['address']}")
    return True


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shipwright",
        description="Resolve deployment networks and signers. Runs the interactive menu without a command.",
    )
    parser.add_argument(
        "--secrets",
        help=f"Secrets JSON file (default: ${config.SECRETS_FILE_ENV} or {config.DEFAULT_SECRETS_FILE})",
    )
    parser.add_argument(
        "--allow-missing-secrets",
        action="store_true",
        help="Drop signers whose secrets are missing instead of failing",
    )
    parser.add_argument("--env-file", help="Path of the .env file to load")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("networks", help="List declared networks")

    show = subparsers.add_parser("show", help="Show the resolved target of a network")
    show.add_argument("network")
    show.add_argument("--json", action="store_true", help="Print as JSON")

    accounts = subparsers.add_parser("accounts", help="Print the list of accounts")
    accounts.add_argument("network")

    check = subparsers.add_parser("check", help="Resolve every network and report problems")
    check.add_argument("--require-signer", action="store_true", help="Fail networks without signers")

    subparsers.add_parser("settings", help="Show compiler and plugin settings")
    subparsers.add_parser("generate", help="Generate a new private key")
    subparsers.add_parser("address", help="Derive the address of a private key read from stdin")
    return parser


def main(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if environ is None:
        environ = config.load_environment(args.env_file)

    # Key utilities work without any configuration
    if args.command == "generate":
        print_credentials(evm.generate_credentials())
        return 0
    if args.command == "address":
        return 0 if print_address(sys.stdin.readline().strip()) else 1

    try:
        resolver = NetworkResolver.from_config(
            environ=environ,
            secrets_path=args.secrets,
            missing_secrets=MISSING_SECRETS_SKIP if args.allow_missing_secrets else MISSING_SECRETS_ERROR,
        )
        cli = ShipwrightCLI(resolver, environ)

        if args.command is None:
            cli.run()
        elif args.command == "networks":
            cli.list_networks()
        elif args.command == "show":
            cli.show_network(args.network, as_json=args.json)
        elif args.command == "accounts":
            cli.list_accounts(args.network)
        elif args.command == "check":
            return 0 if cli.check_networks(require_signer=args.require_signer) else 1
        elif args.command == "settings":
            cli.show_settings()
    except ShipwrightError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        utils.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
