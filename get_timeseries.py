#!/usr/bin/env python3
"""
Extract vegetation index time series at the sample points with Earth Engine.
"""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent / "src"))

from fire_phenology.pipeline import extract_main

if __name__ == "__main__":
    sys.exit(extract_main())
