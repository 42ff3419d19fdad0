"""Allow `python -m razee_installer`."""

import sys

from .cli import main

sys.exit(main())
