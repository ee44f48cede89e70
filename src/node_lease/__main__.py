"""Allow ``python -m node_lease``."""

import sys

from node_lease.cli.main import main

if __name__ == "__main__":
    sys.exit(main())
