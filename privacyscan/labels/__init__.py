"""Address label lookup for privacyscan."""

from .provider import StaticLabelProvider

__all__ = ["StaticLabelProvider"]
