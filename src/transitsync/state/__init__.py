"""State layer.

Holds the refresh cadence policy and the observable channels that are the
single source of truth for what the presentation layer renders.
"""
