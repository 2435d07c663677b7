#!/usr/bin/env python3
"""
Exceptions and warnings raised by the fire phenology pipeline.
"""


class InvalidInputError(ValueError):
    """AOI or sampling parameters cannot be used for sampling"""


class ConfigError(ValueError):
    """Configuration value has the wrong type or range"""


class PhenologyFitError(RuntimeError):
    """A single time series could not be fitted"""


class SamplingShortfall(UserWarning):
    """Fewer points than requested because the candidate pool ran out"""

    def __init__(self, produced: int, requested: int):
        self.produced = produced
        self.requested = requested
        super().__init__(
            f"Candidate pool exhausted: produced {produced} of {requested} points. "
            "Increase oversample_factor or decrease min_distance."
        )
