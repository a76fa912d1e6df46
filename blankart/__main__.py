"""BlankArt CLI entry point: python -m blankart"""

from __future__ import annotations

import sys

from blankart.cli import main

if __name__ == "__main__":
    sys.exit(main())
