"""Entry point for ``python -m paper_swipe``."""

import sys

from paper_swipe.cli import main

sys.exit(main())
