#!/usr/bin/env python3
"""
Chain Log Reconciliation Tool

Runs the logrecon CLI from a source checkout without installing it.

Usage:
    ./scripts/reconcile.py comparelogs --chain-1 URL --chain-2 URL --from-block 1000000
    ./scripts/reconcile.py cspare --chain-1 URL --chain-2 URL --account-file accounts.json
    ./scripts/reconcile.py version
"""

import sys
from pathlib import Path

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from logrecon.cli import main


if __name__ == "__main__":
    sys.exit(main())
