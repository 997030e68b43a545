"""
Archivist Importer — Entry Point

Thin wrapper around cli/app.py so the importer can be started from a
checkout without installing it.

To run: python orchestration/main.py --help
   or:  python -m cli.app --help
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cli.app import run  # noqa: E402

if __name__ == "__main__":
    run()
