"""Database initialization utilities for PolyDate"""
from datetime import date

DEMO_PROFILES = [
    {
        'external_id': 900000001,
        'username': 'anya_poly',
        'first_name': 'Anya',
        'bio': 'Second year, always at the library cafe',
        'university': 'Polytech',
        'faculty': 'Computer Science',
        'course': 2,
        'birth_date': date(2005, 4, 12),
        'gender': 'female',
        'looking_for': 'male',
        'interests': ['climbing', 'jazz', 'board games'],
    },
    {
        'external_id': 900000002,
        'username': 'max_eng',
        'first_name': 'Max',
        'bio': 'Robotics club, looking for someone to explore the city with',
        'university': 'Polytech',
        'faculty': 'Mechanical Engineering',
        'course': 3,
        'birth_date': date(2004, 9, 3),
        'gender': 'male',
        'looking_for': 'female',
        'interests': ['robotics', 'cycling'],
    },
    {
        'external_id': 900000003,
        'username': 'lena_arch',
        'first_name': 'Lena',
        'bio': 'Sketching buildings and drinking too much coffee',
        'university': 'Polytech',
        'faculty': 'Architecture',
        'course': 4,
        'birth_date': date(2003, 1, 27),
        'gender': 'female',
        'looking_for': 'all',
        'interests': ['drawing', 'coffee', 'museums'],
    },
    {
        'external_id': 900000004,
        'username': 'ivan_phys',
        'first_name': 'Ivan',
        'bio': 'Physics nerd, decent cook',
        'university': 'Polytech',
        'faculty': 'Applied Physics',
        'course': 1,
        'birth_date': date(2006, 6, 30),
        'gender': 'male',
        'looking_for': 'all',
        'interests': ['cooking', 'astronomy'],
    },
]


def create_demo_profiles(db, logger):
    """Create demo campus profiles, skipping ones that already exist"""
    # Import here to avoid circular imports
    from models.profile import Profile
    from utils.helpers import profile_id_for

    created_count = 0
    for data in DEMO_PROFILES:
        data = dict(data)
        profile_id = profile_id_for(data['external_id'])
        if db.session.get(Profile, profile_id) is not None:
            continue

        profile = Profile(
            id=profile_id,
            telegram_id=data.pop('external_id'),
            is_active=True,
            photos=[],
            **data
        )
        db.session.add(profile)
        created_count += 1
        logger.info(f"Created demo profile: {profile.first_name}")

    db.session.commit()
    logger.info(f"Created {created_count} demo profiles")
    return created_count
