"""A small x86-64 teaching kernel and its shell, modelled in Python."""

__version__ = "0.1.0"