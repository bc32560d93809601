"""
Inline FIM completion - command line entry point.
"""

import sys

from app import run_app

if __name__ == "__main__":
    sys.exit(run_app())
