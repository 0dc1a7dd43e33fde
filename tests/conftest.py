"""Shared fixtures: a stub marketplace API and in-memory socket/WebRTC fakes."""

import asyncio
import os
import sys
from fractions import Fraction
from typing import Any, Optional

import av
import httpx
import numpy as np
import pytest
from aiortc import MediaStreamTrack, RTCSessionDescription
from aiortc.mediastreams import MediaStreamError
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fluentx.errors import MediaAccessError
from fluentx.http import ApiClient
from fluentx.realtime.socket_client import SocketChannel

STUDENT_USER = {
    "userId": "stu-1",
    "email": "minji@example.com",
    "firstName": "Minji",
    "lastName": "Kim",
}

TUTOR = {
    "userId": "tutor-1",
    "firstName": "Maria",
    "lastName": "Santos",
    "displayName": "Maria Santos",
    "rating": 4.9,
    "languages": ["English", "Filipino"],
    "hourlyRate": 12.5,
}


# ---------------------------------------------------------------------------
# Stub REST API
# ---------------------------------------------------------------------------

def build_stub_app() -> FastAPI:
    app = FastAPI()
    app.state.calls = []
    app.state.booked = []
    app.state.opened = []
    app.state.attendance = []

    def authed(request: Request) -> bool:
        return request.cookies.get("session_token") == "tok-abc"

    def unauthorized():
        return JSONResponse({"success": False, "error": "Unauthorized"}, status_code=401)

    @app.middleware("http")
    async def record(request: Request, call_next):
        app.state.calls.append((request.method, request.url.path, dict(request.query_params)))
        return await call_next(request)

    @app.post("/student/login")
    async def login(payload: dict, response: Response):
        if payload.get("password") != "secret123":
            return JSONResponse({"error": "Invalid email or password"}, status_code=401)
        response.set_cookie("session_token", "tok-abc", httponly=True)
        return {"success": True, "user": STUDENT_USER}

    @app.get("/student/me")
    async def me(request: Request):
        if not authed(request):
            return unauthorized()
        return {"success": True, "user": STUDENT_USER}

    @app.post("/refresh")
    async def refresh(request: Request):
        if not authed(request):
            return unauthorized()
        return {"success": True}

    @app.post("/logout")
    async def logout():
        return {"success": True}

    @app.put("/user/password")
    async def change_password(payload: dict):
        return {"success": True}

    @app.put("/user/email")
    async def change_email(payload: dict):
        return {"success": True, "email": payload["newEmail"]}

    @app.get("/schedule/student-stats")
    async def student_stats(request: Request):
        if not authed(request):
            return unauthorized()
        return {"success": True, "data": {"lessonsCompleted": 4, "upcomingLessons": 1, "totalHours": 1.7}}

    @app.get("/schedule/available/{tutor_id}")
    async def available(tutor_id: str):
        if tutor_id == "missing":
            return {"success": False, "error": "Tutor has no schedule"}
        return {
            "success": True,
            "data": [
                {"slotId": "s1", "tutorId": tutor_id, "date": "2025-01-10",
                 "time": "6:00 PM", "durationMinutes": 25},
            ],
        }

    @app.post("/schedule/book")
    async def book(payload: dict):
        if payload.get("slotId") == "taken":
            return JSONResponse({"success": False, "error": "Slot already booked"}, status_code=409)
        app.state.booked.append(payload["slotId"])
        return {"success": True, "data": {"bookingId": "b-1"}}

    @app.post("/tutor/login")
    async def tutor_login(payload: dict, response: Response):
        if payload.get("password") != "secret123":
            return JSONResponse({"error": "Invalid email or password"}, status_code=401)
        response.set_cookie("session_token", "tok-abc", httponly=True)
        return {"success": True, "user": TUTOR}

    @app.get("/tutor/me")
    async def tutor_me(request: Request):
        if not authed(request):
            return unauthorized()
        return {"success": True, "user": TUTOR}

    @app.post("/tutor/refresh")
    async def tutor_refresh(request: Request):
        if not authed(request):
            return unauthorized()
        return {"success": True}

    @app.post("/tutor/logout")
    async def tutor_logout():
        return {"success": True}

    @app.put("/tutor/user/password")
    async def tutor_change_password(payload: dict):
        return {"success": True}

    @app.post("/schedule/open")
    async def open_slots(payload: dict):
        app.state.opened.extend(payload["slots"])
        return {"success": True}

    @app.post("/schedule/close")
    async def close_slots(payload: dict):
        if "s-booked" in payload["slotIds"]:
            return {"success": False, "error": "Cannot close a booked slot"}
        return {"success": True}

    @app.get("/schedule/week")
    async def week(weekOffset: int = 0):
        return {
            "success": True,
            "data": {
                "weekStart": "2025-01-06",
                "weekEnd": "2025-01-12",
                "slots": [
                    {"date": "2025-01-10", "time": "6:00 PM", "status": "booked",
                     "bookingId": "b-1", "studentId": "stu-1", "studentName": "Minji Kim"},
                    {"date": "2025-01-10", "time": "6:30 PM", "status": "open"},
                ],
            },
        }

    @app.post("/schedule/attendance")
    async def attendance(payload: dict):
        app.state.attendance.append((payload["bookingId"], payload["status"]))
        return {"success": True}

    @app.get("/tutor/search")
    async def search(request: Request):
        return {
            "success": True,
            "data": {"tutors": [TUTOR], "total": 1, "page": 1, "limit": 10, "hasMore": False},
        }

    @app.get("/tutor/featured")
    async def featured():
        return {"success": True, "data": [TUTOR]}

    @app.get("/tutor/filters/languages")
    async def languages():
        return {"success": True, "data": ["English", "Filipino"]}

    @app.get("/tutor/{tutor_id}")
    async def tutor_profile(tutor_id: str):
        if tutor_id == "ghost":
            return {"success": False}
        return {"success": True, "data": {**TUTOR, "experienceYears": 3}}

    @app.get("/notifications")
    async def notifications():
        return {
            "success": True,
            "data": {
                "notifications": [
                    {"id": "n1", "type": "booking", "title": "New booking",
                     "message": "Minji booked a lesson", "timestamp": "2025-01-09T10:00:00Z",
                     "isRead": False},
                ],
                "unreadCount": 1,
            },
        }

    @app.get("/notifications/unread-count")
    async def unread_count():
        return {"success": True, "data": {"unreadCount": 3}}

    @app.post("/notifications/{notification_id}/read")
    async def mark_read(notification_id: str):
        return {"success": True}

    @app.get("/broken")
    async def broken():
        return JSONResponse({"message": "Database unavailable"}, status_code=500)

    return app


@pytest.fixture
def stub_app():
    return build_stub_app()


@pytest.fixture
def make_client(stub_app):
    """Factory for an ApiClient talking to the stub app (call inside the event loop)."""

    def factory(**kwargs) -> ApiClient:
        return ApiClient(
            "http://testserver",
            transport=httpx.ASGITransport(app=stub_app),
            **kwargs,
        )

    return factory


# ---------------------------------------------------------------------------
# Socket.IO fake
# ---------------------------------------------------------------------------

class FakeSocketClient:
    """In-memory stand-in for socketio.AsyncClient (one handler per event, like the real one)."""

    def __init__(self):
        self.handlers: dict[str, Any] = {}
        self.emitted: list[tuple[str, Any]] = []
        self.connected = False
        self.sid: Optional[str] = None
        self.connect_calls: list[tuple[str, Any]] = []

    def on(self, event, handler=None, namespace=None):
        self.handlers[event] = handler

    async def connect(self, url, auth=None, **kwargs):
        self.connect_calls.append((url, auth))
        self.connected = True
        self.sid = "sid-1"
        await self._trigger("connect")

    async def disconnect(self):
        self.connected = False
        await self._trigger("disconnect", "client disconnect")

    async def emit(self, event, data=None):
        self.emitted.append((event, data))

    async def _trigger(self, event, *args):
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(*args)

    async def server_emit(self, event, *args):
        """Deliver an event as if the server had sent it."""
        await self._trigger(event, *args)

    def emitted_events(self) -> list[str]:
        return [event for event, _ in self.emitted]


@pytest.fixture
def socket_pair():
    fake = FakeSocketClient()
    channel = SocketChannel("http://socket.test", token="tok-abc", client=fake)
    return channel, fake


# ---------------------------------------------------------------------------
# Media / WebRTC fakes
# ---------------------------------------------------------------------------

def make_audio_frame(samples: np.ndarray, pts: int = 0, sample_rate: int = 48000) -> av.AudioFrame:
    """Mono s16 frame from float samples in [-1, 1]."""
    pcm = (np.clip(samples, -1, 1) * 32767).astype(np.int16).reshape(1, -1)
    frame = av.AudioFrame.from_ndarray(pcm, format="s16", layout="mono")
    frame.sample_rate = sample_rate
    frame.pts = pts
    return frame


class FakeTrack(MediaStreamTrack):
    """Local or remote track producing small synthetic frames."""

    def __init__(self, kind: str, amplitude: float = 0.0, time_base: Optional[Fraction] = None):
        super().__init__()
        self.kind = kind
        self.amplitude = amplitude
        self.time_base = time_base
        self._pts = 0
        self._rng = np.random.default_rng(7)

    async def recv(self):
        if self.readyState != "live":
            raise MediaStreamError
        await asyncio.sleep(0.001)
        if self.kind == "audio":
            samples = self._rng.normal(0, self.amplitude, 960) if self.amplitude else np.zeros(960)
            frame = make_audio_frame(samples, pts=self._pts)
            self._pts += 960
            return frame
        frame = av.VideoFrame.from_ndarray(np.full((48, 64, 3), 200, dtype=np.uint8), format="rgb24")
        frame.pts = self._pts
        self._pts += 3000
        if self.time_base is not None:
            frame.time_base = self.time_base
        return frame


class FakeMediaDevices:
    def __init__(self, fail: bool = False, amplitude: float = 0.0):
        self.fail = fail
        self.amplitude = amplitude
        self.calls = 0
        self.tracks: list[FakeTrack] = []

    async def get_user_media(self, audio: bool = True, video: bool = True):
        self.calls += 1
        if self.fail:
            raise MediaAccessError("Permission denied")
        tracks = []
        if audio:
            tracks.append(FakeTrack("audio", self.amplitude))
        if video:
            tracks.append(FakeTrack("video"))
        self.tracks.extend(tracks)
        return tracks


class FakePeerConnection:
    """Records what the coordinator does to an RTCPeerConnection."""

    instances: list["FakePeerConnection"] = []

    def __init__(self, configuration=None):
        self.configuration = configuration
        self.handlers: dict[str, Any] = {}
        self.added_tracks = []
        self.candidates = []
        self.localDescription = None
        self.remoteDescription = None
        self.connectionState = "new"
        self.closed = False
        FakePeerConnection.instances.append(self)

    def on(self, event, f=None):
        def register(func):
            self.handlers[event] = func
            return func
        return register(f) if f is not None else register

    def addTrack(self, track):
        self.added_tracks.append(track)

    async def createOffer(self):
        return RTCSessionDescription(sdp="v=0\r\no=offer\r\n", type="offer")

    async def createAnswer(self):
        return RTCSessionDescription(sdp="v=0\r\no=answer\r\n", type="answer")

    async def setLocalDescription(self, description):
        self.localDescription = description

    async def setRemoteDescription(self, description):
        self.remoteDescription = description

    async def addIceCandidate(self, candidate):
        self.candidates.append(candidate)

    async def close(self):
        self.closed = True
        self.connectionState = "closed"

    async def set_state(self, state: str):
        self.connectionState = state
        await self.handlers["connectionstatechange"]()

    def deliver_track(self, track):
        self.handlers["track"](track)


@pytest.fixture(autouse=True)
def reset_peer_connections():
    FakePeerConnection.instances.clear()
    yield
    FakePeerConnection.instances.clear()
