from polydate_backend import db
from utils.helpers import calculate_age, utcnow


class Profile(db.Model):
    __tablename__ = 'profiles'

    # user_<external id>, assigned once by the identity hand-off
    id = db.Column(db.String(64), primary_key=True)
    telegram_id = db.Column(db.BigInteger, unique=True)
    username = db.Column(db.String(64))
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100))
    bio = db.Column(db.Text, default='')
    photos = db.Column(db.JSON, default=list)
    interests = db.Column(db.JSON, default=list)
    university = db.Column(db.String(200))
    faculty = db.Column(db.String(200))
    course = db.Column(db.Integer)
    birth_date = db.Column(db.Date)
    gender = db.Column(db.String(20))
    looking_for = db.Column(db.String(20))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index('idx_profiles_active_gender', 'is_active', 'gender'),
    )

    @property
    def age(self):
        return calculate_age(self.birth_date)

    @property
    def display_name(self):
        return self.first_name

    def __repr__(self):
        return f'<Profile {self.id}>'

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'username': self.username,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'bio': self.bio or '',
            'photos': list(self.photos or []),
            'interests': list(self.interests or []),
            'university': self.university,
            'faculty': self.faculty,
            'course': self.course,
            'birth_date': self.birth_date.isoformat() if self.birth_date else None,
            'age': self.age,
            'gender': self.gender,
            'looking_for': self.looking_for,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
