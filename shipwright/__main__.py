"""Entry point for ``python -m shipwright``."""

import sys

from shipwright.cli import main

if __name__ == "__main__":
    sys.exit(main())
