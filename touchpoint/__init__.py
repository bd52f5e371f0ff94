"""Touchpoint: customer-touchpoint context engine.

Turns business events and conversation transcripts into bitemporal facts,
an authoritative composite state, an entity graph and a text context
projection.
"""

__version__ = "0.1.0"
