"""Terminal output helpers for the Shipwright CLI."""

from typing import Dict, List, Tuple, Union

# ANSI color codes
RESET = "\033[0m"
BOLD = "\033[1m"
RED = "\033[31m"
YELLOW = "\033[33m"
GREEN = "\033[32m"
CYAN = "\033[36m"


def print_banner() -> None:
    """Print the Shipwright banner."""
    print(bold("shipwright") + " - network and signer configuration for contract deployments")
    print("Secrets are read from the secrets file and environment, and never printed.")


def section_header(title: str) -> None:
    """Print a section header."""
    print()
    print(f"--- {title} ---")


def section_footer(message: str) -> None:
    """Print a section footer."""
    print()
    print(message)


def error(message: str) -> None:
    """Print an error message in red."""
    print(f"{RED}[error]{RESET} {message}")


def warn(message: str) -> None:
    """Print a warning message in yellow."""
    print(f"{YELLOW}[warn]{RESET} {message}")


def success(message: str) -> None:
    """Print a success message in green."""
    print(f"{GREEN}[ok]{RESET} {message}")


def bold(message: str) -> str:
    return f"{BOLD}{message}{RESET}"


def bold_red(message: str) -> str:
    return f"{BOLD}{RED}{message}{RESET}"


def bold_cyan(message: str) -> str:
    return f"{BOLD}{CYAN}{message}{RESET}"


def field(label: str, value: object, width: int = 14) -> None:
    """Print an aligned ``label: value`` line."""
    print(f"{bold((label + ':').ljust(width))} {value}")


def print_menu(title: str, items: Union[Dict[str, str], List[Tuple[str, str]]]) -> None:
    """Print a formatted menu.

    Args:
        title: Menu title
        items: Dictionary mapping keys to labels, or list of (key, label) tuples
    """
    print()
    print(f"=== {title} ===")

    items_list = items.items() if isinstance(items, dict) else items
    for key, label in items_list:
        print(f"{key}. {bold(label)}")

    print()
