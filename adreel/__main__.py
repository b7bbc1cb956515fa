"""Entry point for ``python -m adreel``."""

import sys

from adreel.cli import main

sys.exit(main())
