"""
Structured logging package for the EnviroVoice relay.

All imports should use explicit paths like
'from envirovoice.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' so it never
shadows Python's standard library logging module.
"""

__all__: list[str] = []
