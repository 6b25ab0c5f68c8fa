from .context import RunContext
from .logging import setup_logging

__all__ = ["RunContext", "setup_logging"]
