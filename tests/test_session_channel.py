"""Tests for session room join/leave and state tracking."""

import asyncio

from fluentx.models import ParticipantRole
from fluentx.realtime.session import SessionChannel

STATE = {
    "sessionId": "b-1",
    "participants": {"tutorId": "tutor-1", "studentId": "stu-1"},
    "status": "active",
}


class TestJoinLeave:
    def test_join_emits_and_subscribes(self, socket_pair):
        channel, fake = socket_pair
        session = SessionChannel(channel)
        asyncio.run(session.join("b-1"))
        assert fake.emitted == [("session:join", {"sessionId": "b-1"})]
        assert channel.listener_count() == 4

    def test_leave_returns_to_listener_baseline(self, socket_pair):
        channel, fake = socket_pair
        channel.on("chat:message", print)
        baseline = channel.listener_count()
        session = SessionChannel(channel)

        async def scenario():
            await channel.connect()
            await session.join("b-1")
            await session.leave()

        asyncio.run(scenario())
        assert channel.listener_count() == baseline
        assert fake.emitted_events() == ["session:join", "session:leave"]

    def test_leave_without_join_does_nothing(self, socket_pair):
        channel, fake = socket_pair
        asyncio.run(SessionChannel(channel).leave())
        assert fake.emitted == []

    def test_rejoin_leaves_previous_session(self, socket_pair):
        channel, fake = socket_pair
        session = SessionChannel(channel)

        async def scenario():
            await channel.connect()
            await session.join("b-1")
            await session.join("b-2")

        asyncio.run(scenario())
        assert fake.emitted == [
            ("session:join", {"sessionId": "b-1"}),
            ("session:leave", None),
            ("session:join", {"sessionId": "b-2"}),
        ]
        assert channel.listener_count() == 4

    def test_joined_context_always_leaves(self, socket_pair):
        channel, fake = socket_pair
        session = SessionChannel(channel)

        async def scenario():
            await channel.connect()
            try:
                async with session.joined("b-1"):
                    raise RuntimeError("page crashed")
            except RuntimeError:
                pass

        asyncio.run(scenario())
        assert fake.emitted_events()[-1] == "session:leave"
        assert channel.listener_count() == 0


class TestSessionState:
    def test_state_updates_connection_flag(self, socket_pair):
        channel, fake = socket_pair
        states = []
        session = SessionChannel(channel, on_state_changed=states.append)

        async def scenario():
            await session.join("b-1")
            await fake.server_emit("session:state", {**STATE, "status": "waiting"})
            waiting = session.is_connected
            await fake.server_emit("session:state", STATE)
            return waiting

        waiting = asyncio.run(scenario())
        assert waiting is False
        assert session.is_connected is True
        assert session.participant(ParticipantRole.TUTOR) == "tutor-1"
        assert session.participant(ParticipantRole.STUDENT) == "stu-1"
        assert len(states) == 2

    def test_state_for_other_session_is_ignored(self, socket_pair):
        channel, fake = socket_pair
        session = SessionChannel(channel)

        async def scenario():
            await session.join("b-1")
            await fake.server_emit("session:state", {**STATE, "sessionId": "b-9"})

        asyncio.run(scenario())
        assert session.state is None

    def test_participant_callbacks(self, socket_pair):
        channel, fake = socket_pair
        joined, left = [], []
        session = SessionChannel(
            channel, on_participant_joined=joined.append, on_participant_left=left.append
        )

        async def scenario():
            await session.join("b-1")
            await fake.server_emit("session:user-joined", {"userId": "tutor-1", "userType": "tutor"})
            await fake.server_emit("session:user-left", {"userType": "tutor"})

        asyncio.run(scenario())
        assert joined[0].user_id == "tutor-1"
        assert left[0].user_id is None

    def test_lesson_ended(self, socket_pair):
        channel, fake = socket_pair
        ended = []
        session = SessionChannel(channel, on_lesson_ended=ended.append)

        async def scenario():
            await session.join("b-1")
            await fake.server_emit(
                "session:lesson-ended", {"tutorId": "tutor-1", "message": "Thanks!"}
            )

        asyncio.run(scenario())
        assert ended[0].message == "Thanks!"
        assert session.lesson_ended is ended[0]


class TestEndLesson:
    def test_end_lesson_sent_once(self, socket_pair):
        channel, fake = socket_pair
        session = SessionChannel(channel)

        async def scenario():
            await session.join("b-1")
            first = await session.end_lesson("Time is up")
            second = await session.end_lesson("Time is up")
            return first, second

        assert asyncio.run(scenario()) == (True, False)
        assert fake.emitted_events().count("session:end-lesson") == 1
        assert fake.emitted[-1] == ("session:end-lesson", {"message": "Time is up"})
