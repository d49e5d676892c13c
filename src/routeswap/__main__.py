"""Run the CLI with ``python -m routeswap``."""

import sys

from routeswap.cli import main

sys.exit(main())
