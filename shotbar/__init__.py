"""ShotBar: capture a screenshot, press an arrow key, repeat."""

__version__ = "1.0.0"
