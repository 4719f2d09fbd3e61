"""Entry point for running activity-proxy as a module."""

import sys
from .main import main

if __name__ == "__main__":
    sys.exit(main())
