#!/usr/bin/env python3
"""
HAN Gateway Launcher Script

Usage:
    python scripts/run_gateway.py --config /etc/xplhan.yaml [--debug]
"""

import sys
import os

# Add src to path for development
src_path = os.path.join(os.path.dirname(__file__), '..', 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from han_gateway.cli import main

if __name__ == '__main__':
    sys.exit(main())
