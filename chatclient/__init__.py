"""
chatclient - interactive terminal client for a NUL-framed TCP chat server.
"""

__version__ = "1.0.0"
