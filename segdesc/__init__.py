"""segdesc - x86 segment descriptor decoder and encoder."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("segdesc")
except PackageNotFoundError:
    __version__ = "(local)"
