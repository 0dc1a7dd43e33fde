"""Client settings loaded from the environment (and a local .env file)."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_ICE_SERVERS = [
    "stun:stun.l.google.com:19302",
    "stun:stun1.l.google.com:19302",
]

# Global singleton instance
_settings = None


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Connection and tuning settings for the classroom client."""

    api_url: str = "http://localhost:8765"
    socket_url: str = "http://localhost:8766"
    http_timeout: float = 10.0

    # Socket.IO reconnection policy (delegated to the transport)
    reconnection_attempts: int = 5
    reconnection_delay: float = 1.0
    reconnection_delay_max: float = 5.0

    # Session expiry warning
    session_minutes: int = 30
    warn_minutes: int = 3

    # Speaking detection
    speaking_threshold: float = 40.0
    fft_size: int = 512

    ice_servers: list[str] = field(default_factory=lambda: list(DEFAULT_ICE_SERVERS))
    state_file: Path = field(default_factory=lambda: Path.home() / ".fluentx" / "state.json")

    # aiortc MediaPlayer sources; None disables that kind of track
    video_device: str | None = None
    video_format: str | None = None
    audio_device: str | None = None
    audio_format: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from FLUENTX_* environment variables."""
        load_dotenv()
        defaults = cls()
        state_file = os.getenv("FLUENTX_STATE_FILE")
        return cls(
            api_url=os.getenv("FLUENTX_API_URL", defaults.api_url),
            socket_url=os.getenv("FLUENTX_SOCKET_URL", defaults.socket_url),
            http_timeout=float(os.getenv("FLUENTX_HTTP_TIMEOUT", defaults.http_timeout)),
            reconnection_attempts=int(
                os.getenv("FLUENTX_RECONNECT_ATTEMPTS", defaults.reconnection_attempts)
            ),
            reconnection_delay=float(
                os.getenv("FLUENTX_RECONNECT_DELAY", defaults.reconnection_delay)
            ),
            reconnection_delay_max=float(
                os.getenv("FLUENTX_RECONNECT_DELAY_MAX", defaults.reconnection_delay_max)
            ),
            session_minutes=int(os.getenv("FLUENTX_SESSION_MINUTES", defaults.session_minutes)),
            warn_minutes=int(os.getenv("FLUENTX_WARN_MINUTES", defaults.warn_minutes)),
            speaking_threshold=float(
                os.getenv("FLUENTX_SPEAKING_THRESHOLD", defaults.speaking_threshold)
            ),
            fft_size=int(os.getenv("FLUENTX_FFT_SIZE", defaults.fft_size)),
            ice_servers=_env_list("FLUENTX_ICE_SERVERS", DEFAULT_ICE_SERVERS),
            state_file=Path(state_file).expanduser() if state_file else defaults.state_file,
            video_device=os.getenv("FLUENTX_VIDEO_DEVICE") or None,
            video_format=os.getenv("FLUENTX_VIDEO_FORMAT") or None,
            audio_device=os.getenv("FLUENTX_AUDIO_DEVICE") or None,
            audio_format=os.getenv("FLUENTX_AUDIO_FORMAT") or None,
        )


def get_settings() -> Settings:
    """Get the global settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
