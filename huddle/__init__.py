"""huddle: team messaging with read positions, mentions and audio cues."""

__version__ = "0.1.0"
