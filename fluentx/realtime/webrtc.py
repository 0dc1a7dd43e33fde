"""
WebRTC peer coordination for the one-to-one classroom call.

Signaling (offer/answer/ICE) goes through the socket channel; media goes
through aiortc. aiortc gathers ICE candidates before the local description
is set, so outbound SDP already carries them and no trickle ICE is sent.
Inbound `webrtc:ice-candidate` events from browsers are still applied.
"""

import inspect
import logging
from fractions import Fraction
from typing import Any, Callable, Optional, Protocol

import av
import numpy as np
from aiortc import (
    MediaStreamTrack,
    RTCConfiguration,
    RTCIceServer,
    RTCPeerConnection,
    RTCSessionDescription,
)
from aiortc.contrib.media import MediaPlayer, MediaRelay
from aiortc.sdp import candidate_from_sdp

from ..config import DEFAULT_ICE_SERVERS, Settings, get_settings
from ..errors import MediaAccessError
from ..models import AnswerSignal, IceCandidateSignal, OfferSignal
from . import events
from .events import decoded
from .socket_client import SocketChannel, SubscriptionGroup

logger = logging.getLogger(__name__)

MEDIA_ACCESS_FAILED = "Failed to access camera or microphone"
CONNECTION_LOST = "Connection failed or disconnected"
VIDEO_TIME_BASE = Fraction(1, 90000)


class ToggleableTrack(MediaStreamTrack):
    """
    Forwards frames from a source track. While `enabled` is False the frames
    are replaced with silence (audio) or black (video), so the sender keeps
    running and the remote side sees a muted track rather than a dead one.
    """

    def __init__(self, source: MediaStreamTrack):
        super().__init__()
        self.kind = source.kind
        self.source = source
        self.enabled = True

    async def recv(self):
        frame = await self.source.recv()
        if self.enabled:
            return frame
        if self.kind == "audio":
            return _silent_like(frame)
        return _black_like(frame)

    def stop(self) -> None:
        super().stop()
        self.source.stop()


def _silent_like(frame: av.AudioFrame) -> av.AudioFrame:
    silent = av.AudioFrame.from_ndarray(
        np.zeros_like(frame.to_ndarray()),
        format=frame.format.name,
        layout=frame.layout.name,
    )
    silent.sample_rate = frame.sample_rate
    silent.pts = frame.pts
    silent.time_base = frame.time_base or Fraction(1, frame.sample_rate)
    return silent


def _black_like(frame: av.VideoFrame) -> av.VideoFrame:
    black = av.VideoFrame.from_ndarray(
        np.zeros((frame.height, frame.width, 3), dtype=np.uint8), format="rgb24"
    )
    black.pts = frame.pts
    black.time_base = frame.time_base or VIDEO_TIME_BASE
    return black


class LocalStream:
    """The local camera/microphone tracks of one call."""

    def __init__(self, tracks: list[MediaStreamTrack]):
        self.tracks = list(tracks)

    @property
    def audio_tracks(self) -> list[MediaStreamTrack]:
        return [t for t in self.tracks if t.kind == "audio"]

    @property
    def video_tracks(self) -> list[MediaStreamTrack]:
        return [t for t in self.tracks if t.kind == "video"]

    def stop(self) -> None:
        for track in self.tracks:
            track.stop()


class MediaDevices(Protocol):
    async def get_user_media(self, audio: bool, video: bool) -> list[MediaStreamTrack]:
        ...


class PlayerMediaDevices:
    """Opens camera and microphone through aiortc's MediaPlayer (ffmpeg devices)."""

    def __init__(
        self,
        video_device: Optional[str] = None,
        video_format: Optional[str] = None,
        audio_device: Optional[str] = None,
        audio_format: Optional[str] = None,
        video_options: Optional[dict] = None,
    ):
        self.video_device = video_device
        self.video_format = video_format
        self.audio_device = audio_device
        self.audio_format = audio_format
        self.video_options = video_options or {"video_size": "640x480", "framerate": "30"}
        self._players: list[MediaPlayer] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlayerMediaDevices":
        return cls(
            video_device=settings.video_device,
            video_format=settings.video_format,
            audio_device=settings.audio_device,
            audio_format=settings.audio_format,
        )

    def _open(self, device: Optional[str], fmt: Optional[str], kind: str, options=None):
        if not device:
            raise MediaAccessError(f"No {kind} device configured")
        try:
            player = MediaPlayer(device, format=fmt, options=options or {})
        except Exception as e:
            raise MediaAccessError(f"Could not open {kind} device {device}: {e}") from e
        track = getattr(player, kind)
        if track is None:
            raise MediaAccessError(f"{device} has no {kind} stream")
        self._players.append(player)
        return track

    async def get_user_media(self, audio: bool = True, video: bool = True) -> list[MediaStreamTrack]:
        tracks = []
        if audio:
            tracks.append(self._open(self.audio_device, self.audio_format, "audio"))
        if video:
            tracks.append(
                self._open(self.video_device, self.video_format, "video", self.video_options)
            )
        return tracks


class PeerCoordinator:
    """Owns the RTCPeerConnection and the local/remote tracks of one call."""

    def __init__(
        self,
        channel: SocketChannel,
        remote_user_id: Optional[str] = None,
        ice_servers: Optional[list[str]] = None,
        media_devices: Optional[MediaDevices] = None,
        pc_factory: Optional[Callable[[RTCConfiguration], Any]] = None,
    ):
        """
        Args:
            channel: Socket channel used for signaling
            remote_user_id: User id of the other participant (the `to` of every signal)
            ice_servers: STUN/TURN URLs
            media_devices: Source of local tracks; defaults to MediaPlayer devices from settings
            pc_factory: Builds the peer connection (tests inject a fake)
        """
        self.channel = channel
        self.remote_user_id = remote_user_id
        self.ice_servers = list(ice_servers or DEFAULT_ICE_SERVERS)
        self._media_devices = media_devices
        self._pc_factory = pc_factory or RTCPeerConnection

        self.pc: Any = None
        self.local_stream: Optional[LocalStream] = None
        self.remote_tracks: list[MediaStreamTrack] = []
        self.is_connected = False
        self.error: Optional[str] = None
        self.on_remote_track: Optional[Callable[[MediaStreamTrack], None]] = None
        self.on_peer_left: Optional[Callable[[], Any]] = None

        self._relay = MediaRelay()
        self._subscriptions = SubscriptionGroup()

    @property
    def media_devices(self) -> MediaDevices:
        if self._media_devices is None:
            self._media_devices = PlayerMediaDevices.from_settings(get_settings())
        return self._media_devices

    @property
    def has_remote_stream(self) -> bool:
        return bool(self.remote_tracks)

    def set_remote_user(self, user_id: Optional[str]) -> None:
        self.remote_user_id = user_id

    def _create_peer_connection(self):
        if self.pc is not None:
            return self.pc

        config = RTCConfiguration(iceServers=[RTCIceServer(urls=url) for url in self.ice_servers])
        pc = self._pc_factory(config)

        @pc.on("track")
        def on_track(track):
            logger.info("Received remote track: %s", track.kind)
            self.remote_tracks.append(track)
            if self.on_remote_track is not None:
                self.on_remote_track(track)

        @pc.on("connectionstatechange")
        async def on_connection_state_change():
            state = pc.connectionState
            logger.info("Connection state: %s", state)
            self.is_connected = state == "connected"
            if state in ("failed", "disconnected"):
                self.error = CONNECTION_LOST

        self.pc = pc
        return pc

    async def start_local_stream(self, audio: bool = True, video: bool = True) -> LocalStream:
        """
        Open local media and add it to the peer connection.

        Raises:
            MediaAccessError: Permission denied or no device
        """
        if self.local_stream is not None:
            return self.local_stream
        try:
            sources = await self.media_devices.get_user_media(audio=audio, video=video)
        except MediaAccessError as e:
            logger.error("Error accessing media devices: %s", e)
            self.error = MEDIA_ACCESS_FAILED
            raise

        stream = LocalStream([ToggleableTrack(source) for source in sources])
        self.local_stream = stream
        pc = self._create_peer_connection()
        for track in stream.tracks:
            pc.addTrack(self._relay.subscribe(track))
        return stream

    def audio_tap(self) -> Optional[MediaStreamTrack]:
        """A second reader of the local audio (for speaking detection)."""
        if self.local_stream is None or not self.local_stream.audio_tracks:
            return None
        return self._relay.subscribe(self.local_stream.audio_tracks[0])

    async def create_offer(self) -> None:
        if not self.remote_user_id:
            logger.error("No remote user ID provided")
            return
        try:
            pc = self._create_peer_connection()
            offer = await pc.createOffer()
            await pc.setLocalDescription(offer)
            await self.channel.emit(events.WEBRTC_OFFER, {
                "offer": _description_dict(pc.localDescription),
                "to": self.remote_user_id,
            })
            logger.info("Offer sent to: %s", self.remote_user_id)
        except Exception:
            logger.exception("Error creating offer")
            self.error = "Failed to create offer"

    async def handle_offer(self, signal: OfferSignal) -> None:
        logger.info("Received offer from: %s", signal.sender)
        if not self.remote_user_id:
            self.remote_user_id = signal.sender
        try:
            pc = self._create_peer_connection()
            await pc.setRemoteDescription(
                RTCSessionDescription(sdp=signal.offer.sdp, type=signal.offer.type)
            )
            answer = await pc.createAnswer()
            await pc.setLocalDescription(answer)
            await self.channel.emit(events.WEBRTC_ANSWER, {
                "answer": _description_dict(pc.localDescription),
                "to": self.remote_user_id,
            })
            logger.info("Answer sent")
        except Exception:
            logger.exception("Error handling offer")
            self.error = "Failed to handle offer"

    async def handle_answer(self, signal: AnswerSignal) -> None:
        logger.info("Received answer from: %s", signal.sender)
        if self.pc is None:
            logger.error("No peer connection")
            return
        try:
            await self.pc.setRemoteDescription(
                RTCSessionDescription(sdp=signal.answer.sdp, type=signal.answer.type)
            )
        except Exception:
            logger.exception("Error handling answer")
            self.error = "Failed to handle answer"

    async def handle_ice_candidate(self, signal: IceCandidateSignal) -> None:
        if self.pc is None:
            logger.error("No peer connection")
            return
        raw = signal.candidate.candidate
        if not raw:
            # end-of-candidates marker
            return
        try:
            candidate = candidate_from_sdp(raw.split(":", 1)[1] if raw.startswith("candidate:") else raw)
            candidate.sdpMid = signal.candidate.sdp_mid
            candidate.sdpMLineIndex = signal.candidate.sdp_mline_index
            await self.pc.addIceCandidate(candidate)
        except Exception:
            logger.exception("Error handling ICE candidate")

    async def handle_peer_left(self, *_: Any) -> None:
        logger.info("Peer left")
        await self.reset_connection()
        if self.on_peer_left is not None:
            result = self.on_peer_left()
            if inspect.isawaitable(result):
                await result

    async def reset_connection(self) -> None:
        """
        Drop the remote side and rebuild the peer connection around the
        current local tracks, ready for the next offer/answer exchange.
        """
        for track in self.remote_tracks:
            track.stop()
        self.remote_tracks = []
        self.is_connected = False
        if self.pc is not None:
            pc, self.pc = self.pc, None
            await pc.close()
        if self.local_stream is not None:
            pc = self._create_peer_connection()
            for track in self.local_stream.tracks:
                pc.addTrack(self._relay.subscribe(track))

    def attach(self) -> None:
        """Start listening for signaling events."""
        if len(self._subscriptions):
            return
        add = self._subscriptions.add
        add(self.channel.on(events.WEBRTC_OFFER, decoded(events.WEBRTC_OFFER, self.handle_offer)))
        add(self.channel.on(events.WEBRTC_ANSWER, decoded(events.WEBRTC_ANSWER, self.handle_answer)))
        add(self.channel.on(
            events.WEBRTC_ICE_CANDIDATE,
            decoded(events.WEBRTC_ICE_CANDIDATE, self.handle_ice_candidate),
        ))
        add(self.channel.on(events.WEBRTC_PEER_LEFT, self.handle_peer_left))

    def detach(self) -> None:
        self._subscriptions.unsubscribe_all()

    def toggle_audio(self, enabled: bool) -> None:
        if self.local_stream is not None:
            for track in self.local_stream.audio_tracks:
                track.enabled = enabled

    def toggle_video(self, enabled: bool) -> None:
        if self.local_stream is not None:
            for track in self.local_stream.video_tracks:
                track.enabled = enabled

    async def cleanup(self) -> None:
        """Stop every track and close the connection. Safe to call repeatedly."""
        if self.local_stream is not None:
            self.local_stream.stop()
            self.local_stream = None
        for track in self.remote_tracks:
            track.stop()
        self.remote_tracks = []
        if self.pc is not None:
            pc, self.pc = self.pc, None
            await pc.close()
        self.is_connected = False
        self.error = None

    async def __aenter__(self) -> "PeerCoordinator":
        self.attach()
        return self

    async def __aexit__(self, *exc) -> None:
        self.detach()
        await self.cleanup()


def _description_dict(description: Any) -> dict:
    return {"type": description.type, "sdp": description.sdp}
