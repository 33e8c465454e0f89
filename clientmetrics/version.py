"""Maintain a separate module for the version to avoid circular imports."""
import importlib.metadata


def get_version():
    # type: () -> str
    try:
        return importlib.metadata.version("clientmetrics")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"
