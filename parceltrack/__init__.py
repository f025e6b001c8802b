"""
Parcel tracking aggregation engine.
Normalizes delivery status and history across Korean parcel carriers.
"""

__version__ = "1.0.0"
