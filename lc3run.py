#!/usr/bin/env python3
"""
lc3run — run LC-3 object images from a source checkout

Usage:
    python lc3run.py <image.obj> [more.obj ...] [options]

Same options as the installed ``lc3vm`` command; see lc3vm/cli.py.
"""

import os
import sys

# Allow running from project root without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from lc3vm.cli import main

if __name__ == "__main__":
    sys.exit(main())
