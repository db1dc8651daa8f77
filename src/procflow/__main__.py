"""procflow entry point.

Supports: python -m procflow
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
