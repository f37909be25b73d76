"""Allow running as `python -m ryt`."""

import sys

from ryt.cli import main

if __name__ == "__main__":
    sys.exit(main())
