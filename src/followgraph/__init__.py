"""followgraph: a minimal social-graph ledger (registry + follow edges + follower counts)."""

__version__ = "0.1.0"
