"""Allows ``python -m plasmafurnace CONFIG.json``."""
import sys

from plasmafurnace.main import main

sys.exit(main())
