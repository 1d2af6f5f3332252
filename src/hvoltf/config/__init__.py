"""Configuration: library defaults.

Presets and dict/JSON loading live in ``hvoltf.config.presets``, which
depends on the policy and histogram modules and is therefore not imported
here.

Example:
    >>> from hvoltf.config import DEFAULTS
    >>> DEFAULTS.inc_limit
    0.8
"""

from hvoltf.config.defaults import DEFAULTS, Defaults

__all__ = ["Defaults", "DEFAULTS"]
