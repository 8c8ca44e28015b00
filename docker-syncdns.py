#!/usr/bin/env python3

"""Checkout wrapper.

The package lives under `src/syncdns`. This wrapper allows running
`./docker-syncdns.py` straight from a checkout without installing it.

Note: This file prepends `src` to sys.path before importing the package.
"""

import sys
from pathlib import Path


sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from syncdns.cli import main  # noqa: E402


if __name__ == "__main__":
    main()
