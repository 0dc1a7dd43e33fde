"""
Classroom orchestrator: one participant's view of a live lesson.

Composes the session room, chat relay, peer connection and speaking
detector and drives them through enter/exit. The tutor initiates the
WebRTC offer once both the student and local media are available; the
student answers.
"""

import asyncio
import logging
import math
import time
from typing import Any, Callable, Coroutine, Optional
from urllib.parse import parse_qs

from .errors import MediaAccessError
from .models import LessonEnded, ParticipantRole, SessionState, UserLeft
from .realtime.chat import ChatRelay
from .realtime.session import SessionChannel
from .realtime.socket_client import SocketChannel
from .realtime.speaking import SpeakingDetector
from .realtime.webrtc import MediaDevices, PeerCoordinator

logger = logging.getLogger(__name__)

DEFAULT_END_MESSAGE = "The lesson time is over. Thank you for learning with us!"


def resolve_session_id(
    explicit: Optional[str] = None,
    path: str = "",
    query: str = "",
) -> Optional[str]:
    """Session id from an explicit value, then `?sessionId=`, then `/classroom/<id>`."""
    if explicit:
        return explicit
    values = parse_qs(query.lstrip("?")).get("sessionId")
    if values and values[0]:
        return values[0]
    if "/classroom/" in path:
        tail = path.split("/classroom/", 1)[1].split("?", 1)[0].strip("/")
        return tail.split("/", 1)[0] or None
    return None


def format_elapsed(seconds: int) -> str:
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class Classroom:
    def __init__(
        self,
        channel: SocketChannel,
        session_id: str,
        role: ParticipantRole,
        user_id: Optional[str] = None,
        media_devices: Optional[MediaDevices] = None,
        ice_servers: Optional[list[str]] = None,
        pc_factory: Optional[Callable] = None,
        speaking_threshold: float = 40.0,
        fft_size: int = 512,
        audio: bool = True,
        video: bool = True,
        on_lesson_ended: Optional[Callable[[LessonEnded], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            channel: Socket channel (connected on enter if needed)
            session_id: Booking/session id of the lesson
            role: Whether this side is the tutor or the student
            user_id: Own user id, never treated as the remote participant
            media_devices: Camera/microphone source for the peer coordinator
            ice_servers: STUN/TURN URLs
            pc_factory: Peer connection factory (tests pass a fake)
            speaking_threshold: Mean spectrum byte above which the user is speaking
            fft_size: Analyser window
            audio: Open the microphone
            video: Open the camera
            on_lesson_ended: Called when the tutor ends the lesson (student side)
            clock: Seconds clock for the elapsed timer
        """
        self.channel = channel
        self.session_id = session_id
        self.role = role
        self.user_id = user_id
        self.audio = audio
        self.video = video
        self.on_lesson_ended = on_lesson_ended
        self._clock = clock

        self.session = SessionChannel(
            channel,
            on_participant_left=self._handle_user_left,
            on_state_changed=self._handle_state,
            on_lesson_ended=self._handle_lesson_ended,
        )
        self.chat = ChatRelay(channel, session_id)
        self.peer = PeerCoordinator(
            channel,
            ice_servers=ice_servers,
            media_devices=media_devices,
            pc_factory=pc_factory,
        )
        self.peer.on_peer_left = self._handle_remote_gone
        self.speaking = SpeakingDetector(
            threshold=speaking_threshold,
            fft_size=fft_size,
            on_change=self._handle_speaking,
        )

        self.is_speaking_local = False
        self.is_muted = False
        self.is_video_off = False
        self.is_swapped = False
        self.media_error: Optional[str] = None
        self.lesson_ended: Optional[LessonEnded] = None

        self._offer_sent = False
        self._tasks: set[asyncio.Task] = set()
        self._started_at: Optional[float] = None
        self._stopped_elapsed: Optional[int] = None
        self._entered = False

    @property
    def remote_role(self) -> ParticipantRole:
        if self.role == ParticipantRole.TUTOR:
            return ParticipantRole.STUDENT
        return ParticipantRole.TUTOR

    @property
    def remote_user_id(self) -> Optional[str]:
        return self.peer.remote_user_id

    @property
    def is_connecting(self) -> bool:
        return self._entered and not self.peer.is_connected

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def enter(self) -> "Classroom":
        if self._entered:
            return self
        self._entered = True
        try:
            await self.channel.connect()
            await self.session.join(self.session_id)
            await self.chat.start()
            self.peer.attach()
            self._started_at = self._clock()
            self._stopped_elapsed = None
            await self._start_media()
        except Exception:
            await self.exit()
            raise
        return self

    async def _start_media(self) -> None:
        try:
            await self.peer.start_local_stream(audio=self.audio, video=self.video)
        except MediaAccessError as e:
            logger.warning("Continuing without local media: %s", e)
            self.media_error = str(e)
            return
        tap = self.peer.audio_tap()
        if tap is not None:
            self._spawn(self.speaking.run(tap))
        await self._maybe_offer()

    async def exit(self) -> None:
        """Tear everything down. Safe on every exit path and when called twice."""
        if not self._entered:
            return
        self._entered = False
        self.speaking.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.peer.detach()
        await self.peer.cleanup()
        self.chat.stop()
        await self.session.leave()
        if self._started_at is not None:
            self._stopped_elapsed = self.elapsed_seconds
            self._started_at = None
        logger.info("Left classroom %s", self.session_id)

    async def __aenter__(self) -> "Classroom":
        return await self.enter()

    async def __aexit__(self, *exc) -> None:
        await self.exit()

    async def _handle_state(self, state: SessionState) -> None:
        remote_id = state.participants.user_id_for(self.remote_role)
        if not remote_id:
            await self._handle_remote_gone()
            return
        if remote_id == self.user_id:
            return
        if remote_id != self.peer.remote_user_id:
            logger.info("Remote %s is %s", self.remote_role.value, remote_id)
            self.peer.set_remote_user(remote_id)
        await self._maybe_offer()

    async def _handle_user_left(self, data: UserLeft) -> None:
        if data.user_id == self.peer.remote_user_id or (
            data.user_id is None and data.user_type == self.remote_role.value
        ):
            await self._handle_remote_gone()

    async def _handle_remote_gone(self) -> None:
        """Forget the other participant so that their next arrival starts a new call."""
        if self.peer.remote_user_id is None and not self._offer_sent:
            return
        logger.info("Remote %s left, waiting for them to rejoin", self.remote_role.value)
        self.peer.set_remote_user(None)
        self._offer_sent = False
        pc = self.peer.pc
        if pc is not None and (pc.localDescription or pc.remoteDescription) is not None:
            await self.peer.reset_connection()

    async def _maybe_offer(self) -> None:
        if self.role != ParticipantRole.TUTOR or self._offer_sent:
            return
        if self.peer.remote_user_id and self.peer.local_stream is not None:
            self._offer_sent = True
            logger.info("Initiating offer to student: %s", self.peer.remote_user_id)
            await self.peer.create_offer()

    def _handle_lesson_ended(self, data: LessonEnded) -> Any:
        self.lesson_ended = data
        if self.on_lesson_ended is not None:
            return self.on_lesson_ended(data)
        return None

    def _handle_speaking(self, speaking: bool) -> None:
        self.is_speaking_local = speaking

    def set_muted(self, muted: bool) -> None:
        self.is_muted = muted
        self.peer.toggle_audio(not muted)

    def set_video_off(self, video_off: bool) -> None:
        self.is_video_off = video_off
        self.peer.toggle_video(not video_off)

    def swap(self) -> bool:
        self.is_swapped = not self.is_swapped
        return self.is_swapped

    def layout(self) -> dict[str, Optional[str]]:
        """Which stream fills the main view and which the picture-in-picture (None: placeholder)."""
        local = "local" if self.peer.local_stream is not None else None
        remote = "remote" if self.peer.has_remote_stream else None
        if self.is_swapped:
            return {"main": remote, "pip": local}
        return {"main": local, "pip": remote}

    @property
    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return self._stopped_elapsed or 0
        return math.floor(self._clock() - self._started_at)

    def format_elapsed(self) -> str:
        return format_elapsed(self.elapsed_seconds)

    async def end_lesson(self, message: str = DEFAULT_END_MESSAGE) -> bool:
        """Tutor only. Sends the end-of-lesson notice once; the tutor stays in the room."""
        if self.role != ParticipantRole.TUTOR:
            raise PermissionError("Only the tutor can end the lesson")
        return await self.session.end_lesson(message)

    async def send_message(self, text: str, correction: Optional[str] = None) -> None:
        await self.chat.send_message(text, correction=correction)
