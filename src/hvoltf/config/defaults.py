"""Library-wide default settings."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Defaults:
    """Default values used when a setting is not given explicitly.

    Attributes:
        verbose: Promote builder progress messages from DEBUG to INFO
        cache_measurements: Keep the per-voxel measurements between passes
        inc_limit: Lowest permissible fraction of voxels inside the inclusion bounds
        renormalize: Renormalize blurred values near the grid border
        perc_hist_bins: Resolution of the auxiliary histogram of percentile inclusion
        hist_eq_bins: Bins used when histogram-equalizing scatterplots
        hist_eq_smart: Most populated bins ignored by scatterplot equalization
    """

    verbose: bool = False
    cache_measurements: bool = True
    inc_limit: float = 0.80
    renormalize: bool = False
    perc_hist_bins: int = 1024
    hist_eq_bins: int = 1024
    hist_eq_smart: int = 2


# Singleton instance for use throughout the codebase
DEFAULTS = Defaults()
