"""SipLocal core: business hours caching and cart validation."""

from __future__ import annotations

__version__ = "0.1.0"
