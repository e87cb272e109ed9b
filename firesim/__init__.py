"""Fire-alarm loop simulator core: discovery, configuration, matching and cause & effect."""

__version__ = "0.1.0"
