"""media-drop: schedule media posts into chat rooms."""

__version__ = "0.1.0"
