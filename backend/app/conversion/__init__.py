from .base import BaseConversionLogic
from .mock_conversion import MockConversionLogic

__all__ = ["BaseConversionLogic", "MockConversionLogic"]
