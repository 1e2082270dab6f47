from enum import Enum

from polydate_backend import db
from utils.errors import InvalidInputError
from utils.helpers import utcnow


class SwipeDirection(Enum):
    LIKE = 'like'
    DISLIKE = 'dislike'

    @classmethod
    def parse(cls, value):
        """Accept an enum member or its string value"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInputError("direction must be 'like' or 'dislike'")


class Swipe(db.Model):
    __tablename__ = 'swipes'

    id = db.Column(db.Integer, primary_key=True)
    from_user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    to_user_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    direction = db.Column(
        db.Enum(SwipeDirection, name='swipe_direction', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    # One decision per ordered pair; the second index serves reverse-like lookups
    __table_args__ = (
        db.UniqueConstraint('from_user_id', 'to_user_id', name='uq_swipe_pair'),
        db.CheckConstraint('from_user_id != to_user_id', name='ck_swipe_not_self'),
        db.Index('idx_swipes_reverse', 'to_user_id', 'from_user_id', 'direction'),
    )

    @property
    def is_like(self):
        return self.direction is SwipeDirection.LIKE

    def __repr__(self):
        return f'<Swipe {self.from_user_id} -> {self.to_user_id} {self.direction.value}>'

    def to_dict(self):
        return {
            'id': self.id,
            'from_user_id': self.from_user_id,
            'to_user_id': self.to_user_id,
            'direction': self.direction.value if self.direction else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
