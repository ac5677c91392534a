"""Entry point for ``python -m specflow``."""

import sys

from specflow.cli import main

sys.exit(main())
