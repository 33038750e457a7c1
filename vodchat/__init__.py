"""vodchat: replay recorded stream chat in step with a video timeline."""

__version__ = "1.0.0"
