"""Version information for tabular_privacy."""

try:
    from tabular_privacy._version_info import __version__, __version_tuple__
except ImportError:
    # _version_info.py is only written when the package is built
    from importlib.metadata import PackageNotFoundError, version

    try:
        __version__ = version("tabular-privacy")
    except PackageNotFoundError:
        __version__ = "unknown"
    __version_tuple__ = tuple(__version__.split("."))
