"""Tests for wire model aliasing and helpers."""

import pytest
from pydantic import ValidationError

from fluentx.models import (
    ChatMessage,
    IceCandidateSignal,
    OfferSignal,
    ParticipantRole,
    SessionState,
    TutorSearchParams,
    UserProfile,
)


class TestWireModels:
    def test_camel_case_round_trip(self):
        message = ChatMessage.model_validate({
            "id": "m1", "senderId": "tutor-1", "senderType": "tutor",
            "text": "Good job", "timestamp": "2025-01-10T10:00:00Z", "isSystemMessage": False,
            "unexpectedField": 1,
        })
        assert message.sender_id == "tutor-1"
        assert "senderId" in message.to_wire()
        assert "unexpectedField" not in message.to_wire()

    def test_session_state_defaults(self):
        state = SessionState.model_validate({"sessionId": "b-1"})
        assert state.status == "waiting"
        assert state.participants.user_id_for(ParticipantRole.TUTOR) is None

    def test_session_status_is_restricted(self):
        with pytest.raises(ValidationError):
            SessionState.model_validate({"sessionId": "b-1", "status": "finished"})

    def test_signal_from_alias(self):
        offer = OfferSignal.model_validate({"offer": {"type": "offer", "sdp": "v=0"}, "from": "tutor-1"})
        assert offer.sender == "tutor-1"
        ice = IceCandidateSignal.model_validate({
            "candidate": {"candidate": "candidate:1 1 udp 1 10.0.0.1 9 typ host", "sdpMLineIndex": 1},
            "from": "stu-1",
        })
        assert ice.candidate.sdp_mline_index == 1

    def test_user_profile_id_aliases(self):
        assert UserProfile.model_validate({"id": "u1"}).user_id == "u1"
        assert UserProfile.model_validate({"userId": "u2", "givenName": "Ana", "familyName": "Cruz"}).full_name == "Ana Cruz"

    def test_search_params_drop_none(self):
        params = TutorSearchParams(languages=["English"], sort_by="rating", is_available=False)
        assert params.to_query() == {"languages": ["English"], "sortBy": "rating", "isAvailable": "false"}
