from polydate_backend import db
from utils.helpers import utcnow


class Match(db.Model):
    __tablename__ = 'matches'

    id = db.Column(db.Integer, primary_key=True)
    # Canonical order: user1_id < user2_id
    user1_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    user2_id = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    last_activity_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    messages = db.relationship('Message', backref='match', lazy='dynamic')

    __table_args__ = (
        db.UniqueConstraint('user1_id', 'user2_id', name='uq_match_pair'),
        db.CheckConstraint('user1_id < user2_id', name='ck_match_canonical_order'),
        db.Index('idx_matches_user2', 'user2_id'),
    )

    def involves(self, user_id):
        return user_id in (self.user1_id, self.user2_id)

    def counterpart_id(self, user_id):
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def __repr__(self):
        return f'<Match {self.id} {self.user1_id}/{self.user2_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'user1_id': self.user1_id,
            'user2_id': self.user2_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'last_activity_at': self.last_activity_at.isoformat() if self.last_activity_at else None
        }
