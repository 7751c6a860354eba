"""
Top-level package for zing.

zing turns the staged changes of a git work tree into a commit message
written by a language model. The CLI entry point lives in
:mod:`zing.cli`; the message pipeline is exposed by :mod:`zing.pipeline`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
