"""Allow ``python -m binmatrix``."""

import sys

from binmatrix.cli import main

sys.exit(main())
