"""rachibot - a message-command interpreter in front of an LLM provider and a key-value store."""

__version__ = "0.1.0"
