"""
Entry Point Script (Bootstrap)
==============================
Development runner for the command line interface.

Why is this file needed?
------------------------
1. It is located outside the 'src' package to act as a convenient runner.
2. It modifies 'sys.path' so 'from plasmafurnace...' resolves without
   installing the package.

Usage:
    $ python run.py examples/furnace.json -o result.h5
"""
import os
import sys

# Add the 'src' directory to the Python path
current_dir: str = os.path.dirname(os.path.abspath(__file__))
src_path: str = os.path.join(current_dir, 'src')
sys.path.insert(0, src_path)

from plasmafurnace.main import main

if __name__ == "__main__":
    sys.exit(main())
