"""Package list selection and loading."""

from pacsmith.packages.source import (
    load_package_file,
    parse_selection,
    resolve_packages,
)

__all__ = ["load_package_file", "parse_selection", "resolve_packages"]
