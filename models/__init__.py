# models/__init__.py
from models.profile import Profile
from models.swipe import Swipe, SwipeDirection
from models.match import Match
from models.message import Message

__all__ = [
    'Profile', 'Swipe', 'SwipeDirection', 'Match', 'Message'
]
