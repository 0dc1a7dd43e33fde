"""FluentX classroom client: REST APIs, realtime session, WebRTC and booking."""

__version__ = "1.0.0"
