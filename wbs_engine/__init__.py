# CUI // SP-PROPIN
"""WBS estimate synthesis and aggregation engine."""

__version__ = "0.1.0"
