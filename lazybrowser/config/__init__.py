"""Configuration tree: defaults, merging, typed snapshots, discovery.

``load_configuration`` lives in ``lazybrowser.config.loader`` because it
depends on the scripting engine.
"""

from .merge import diff, merge
from .types import Config, ConfigStore

__all__ = ["Config", "ConfigStore", "diff", "merge"]
