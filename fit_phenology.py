#!/usr/bin/env python3
"""
Fit double-logistic phenology curves to the extracted time series.
"""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent / "src"))

from fire_phenology.pipeline import phenology_main

if __name__ == "__main__":
    sys.exit(phenology_main())
