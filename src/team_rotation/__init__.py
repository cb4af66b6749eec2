"""Team Rotation: schedule on-call rotations as Google Calendar events."""

__version__ = "0.1.0"
