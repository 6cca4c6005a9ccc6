"""Entry points of mdv-launcher: the ``mdv`` launcher and the ``mdv-install`` CLI."""

from installer.config import package_version

__version__ = package_version()

__all__ = ["__version__"]
