#!/usr/bin/env python3
"""
Token scout launcher script.

Runs the scout against the live discover feed using configs/default.yaml.
Matches are logged and, when Telegram is configured, pushed to the admins.
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lpscout.runner.pipeline import main


if __name__ == "__main__":
    sys.argv = ["lpscout", "--config", "configs/default.yaml", *sys.argv[1:]]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nToken scout stopped by user.")
        sys.exit(0)
