#!/usr/bin/env python3
"""Direct launcher for the Finance Manager dashboard.

This script configures logging and launches Streamlit on
``finance_manager/dashboard.py``.
"""

import logging
import os
import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()

if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("FINANCE_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    env = dict(os.environ, PYTHONPATH=str(project_root))
    subprocess.run(
        [sys.executable, "-m", "streamlit", "run", str(project_root / "finance_manager" / "dashboard.py")],
        env=env,
    )
