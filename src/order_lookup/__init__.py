"""Order lookup core: resolve customer identifiers into order replies."""

from .agent.pipeline import OrderLookupPipeline
from .config import LookupConfig

__all__ = ["LookupConfig", "OrderLookupPipeline"]
