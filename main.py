"""
Entrypoint: run the httpbridge command line client
"""

import sys

from httpbridge.cli import main


if __name__ == "__main__":
    sys.exit(main())
