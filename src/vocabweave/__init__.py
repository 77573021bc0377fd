"""VocabWeave: in-place vocabulary substitution for learning while reading."""

import importlib.metadata


def _get_version() -> str:
    """
    Retrieve the package version from metadata.

    Returns:
        The version string, or a development version if not installed.

    """
    try:
        return importlib.metadata.version("vocabweave")
    except importlib.metadata.PackageNotFoundError:
        # Not installed, e.g. running from a source checkout
        return "0.0.0-dev"


__version__ = _get_version()
