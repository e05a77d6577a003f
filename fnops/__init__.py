"""
fnops reconciles serverless functions and the objects they own against a
cluster, and installs catalogs of components onto it.
"""

__all__ = [
    "callbacks",
    "client",
    "container",
    "deploy",
    "exceptions",
    "function",
    "installer",
    "manifest",
    "operator",
    "runtimes",
    "workspace",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
