from .logger import JsonlLogger, LogBundle, RepeatFilter

__all__ = ["JsonlLogger", "LogBundle", "RepeatFilter"]
