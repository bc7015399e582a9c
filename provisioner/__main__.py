"""Module entry point: ``python -m provisioner``."""

import sys

from provisioner import cli

if __name__ == "__main__":
    sys.exit(cli.main())
