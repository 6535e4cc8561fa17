"""
Meetups Backend

A FastAPI backend aggregating newly created meetup groups.
Discovers groups from the Meetup RSS feed, loads their details concurrently
from the Meetup API and tags each one with its continent.
"""

__version__ = "1.0.0"
