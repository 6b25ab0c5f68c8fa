from .source import SourceDatabase
from .exporter import Exporter, copy_command

__all__ = ["SourceDatabase", "Exporter", "copy_command"]
