"""VBALoom: translate Access/VBA event procedures into ClojureScript."""

__version__ = "0.1.0"
