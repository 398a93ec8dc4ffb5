"""CLI package.

The ``cli`` sub-package contains the Click application and all
command implementations. It imports only from the public sub-package
APIs, never from internal submodules directly.
"""
from __future__ import annotations
