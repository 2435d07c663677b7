#!/usr/bin/env python3
"""
Generate minimum-distance random sample points inside the area of interest.
"""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent / "src"))

from fire_phenology.pipeline import sample_main

if __name__ == "__main__":
    sys.exit(sample_main())
