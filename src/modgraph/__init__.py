"""modgraph - hierarchical module build-graph resolver for C/C++ projects."""

__version__ = "0.1.0"
