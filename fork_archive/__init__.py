"""
Fork Archive — Preserve contributor forks in organization-owned archives.

One archive per upstream project accumulates the upstream history plus a
remote-tracking namespace for every archived contributor.
"""

__version__ = "0.1.0"
