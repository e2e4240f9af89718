"""GateRepo: token-gated repository invitations.

Grants a blockchain-address holder a one-time collaborator invitation to a
private GitHub repository when the address holds at least a gate's minimum
quantity of an ERC-20 token.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("gate-repo")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
