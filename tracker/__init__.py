"""Episode Tracker - TV show tracking with Plex watch history sync"""

__version__ = "1.0.0"
