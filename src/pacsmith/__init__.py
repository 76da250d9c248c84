"""pacsmith - bulk pacman installer with failure remediation."""

__version__ = "0.1.0"
