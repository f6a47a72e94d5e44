"""linkrisk: heuristic URL risk scoring."""

__version__ = "1.0.0"
