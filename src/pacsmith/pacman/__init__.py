"""Wrappers for the external package manager and AUR helper."""

from pacsmith.pacman.aur import AurHelper
from pacsmith.pacman.backend import InstallMode, PackageBackend, PacmanBackend

__all__ = ["AurHelper", "InstallMode", "PackageBackend", "PacmanBackend"]
