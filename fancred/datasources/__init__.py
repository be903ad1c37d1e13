from .base import HoldingsReader
from .chiliz import ChilizHoldingsReader
from .demo import DemoHoldingsReader

__all__ = ["HoldingsReader", "ChilizHoldingsReader", "DemoHoldingsReader"]
