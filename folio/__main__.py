"""Allow ``python -m folio``."""

import sys

from .cli import main

sys.exit(main())
