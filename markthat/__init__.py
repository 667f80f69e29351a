"""Extensible Markdown parser core: rule chains, a syntax tree, HTML rendering and generic inline structures."""

__version__ = "0.7.1"