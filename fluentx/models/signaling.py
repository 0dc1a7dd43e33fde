"""Models for WebRTC signaling relayed through the socket channel."""

from typing import Literal, Optional

from pydantic import Field

from .common import WireModel


class SessionDescription(WireModel):
    """RTCSessionDescriptionInit as produced by browsers and aiortc."""
    type: Literal["offer", "answer", "pranswer", "rollback"]
    sdp: str = ""


class IceCandidate(WireModel):
    """RTCIceCandidateInit. `candidate` is the raw `candidate:...` SDP attribute."""
    candidate: str
    sdp_mid: Optional[str] = None
    sdp_mline_index: Optional[int] = Field(None, alias="sdpMLineIndex")
    username_fragment: Optional[str] = None


class OfferSignal(WireModel):
    """Inbound `webrtc:offer`."""
    offer: SessionDescription
    sender: str = Field(..., alias="from")


class AnswerSignal(WireModel):
    """Inbound `webrtc:answer`."""
    answer: SessionDescription
    sender: str = Field(..., alias="from")


class IceCandidateSignal(WireModel):
    """Inbound `webrtc:ice-candidate`."""
    candidate: IceCandidate
    sender: str = Field(..., alias="from")
