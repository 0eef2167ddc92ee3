"""Find image assets that no source file in a front-end project references."""

__version__ = "0.3.0"
