"""
geowalk: natural-language movement control for a map avatar.

Turns free-form commands ("go to the night market", "move 200 meters
north", a coordinate pair, a map link) into validated, rate-limited
position updates with a full audit trail.
"""

__version__ = "0.1.0"
