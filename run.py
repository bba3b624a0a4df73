"""
SysVital Entry Point
Runs the command line interface from a source checkout.
"""
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sysvital.cli import main

if __name__ == "__main__":
    sys.exit(main())
