"""Participant-side helpers: countdown, local Round 1 scoring, and session glue.

``RemoteGame`` lives in ``trivia.client.transport`` and needs the ``client``
extra (requests and python-socketio).
"""
from .accumulator import Round1Accumulator
from .countdown import Countdown
from .errors import ClientError, RemoteError
from .session import ParticipantSession

__all__ = ['Countdown', 'Round1Accumulator', 'ParticipantSession', 'ClientError', 'RemoteError']
