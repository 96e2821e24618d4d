# docsign/config/__init__.py
from __future__ import annotations

"""
docsign.config is a PACKAGE.

- Signing core constants live in: docsign.config.signing
- App runtime settings live in: docsign.settings
"""

from .signing import A4_RATIO, SigningConfig

__all__ = ["A4_RATIO", "SigningConfig"]
