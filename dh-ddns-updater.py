#!/usr/bin/env python3

"""Compatibility wrapper.

The project is packaged under `src/dh_ddns`. This wrapper allows running
`./dh-ddns-updater.py [CONFIG_PATH]` from a fresh checkout.

Note: This file intentionally tweaks sys.path before importing the package.
"""

import sys
from pathlib import Path


sys.path.insert(0, str(Path(__file__).resolve().parent / "src"))

from dh_ddns.cli import main  # noqa: E402


if __name__ == "__main__":
    sys.exit(main())
