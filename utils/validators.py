"""
Input validation utilities
"""
from datetime import date, datetime

from utils.errors import InvalidInputError
from utils.helpers import calculate_age

GENDERS = ('male', 'female')
GENDER_PREFERENCES = ('male', 'female', 'all')

MIN_AGE = 16
MAX_AGE = 100
MAX_COURSE = 6


def validate_gender(gender):
    """Validate profile gender, empty means unspecified"""
    if gender in (None, ''):
        return None
    if gender not in GENDERS:
        raise InvalidInputError(f"gender must be one of: {', '.join(GENDERS)}")
    return gender


def validate_looking_for(looking_for):
    """Validate gender preference, empty means no preference"""
    if looking_for in (None, ''):
        return None
    if looking_for not in GENDER_PREFERENCES:
        raise InvalidInputError(f"looking_for must be one of: {', '.join(GENDER_PREFERENCES)}")
    return looking_for


def parse_birth_date(value):
    """Parse an ISO birth date and check the age range"""
    if value in (None, ''):
        return None
    if isinstance(value, date):
        birth_date = value
    else:
        try:
            birth_date = datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
        except ValueError:
            raise InvalidInputError('birth_date must be an ISO date (YYYY-MM-DD)')

    age = calculate_age(birth_date)
    if not MIN_AGE <= age <= MAX_AGE:
        raise InvalidInputError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    return birth_date


def validate_course(course):
    """Validate study year"""
    if course in (None, ''):
        return None
    try:
        course = int(course)
    except (TypeError, ValueError):
        raise InvalidInputError('course must be a number')
    if not 1 <= course <= MAX_COURSE:
        raise InvalidInputError(f"course must be between 1 and {MAX_COURSE}")
    return course


def validate_string_list(value, field, max_items=20, unique=False):
    """Validate a list of non-empty strings, optionally dropping duplicates"""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise InvalidInputError(f"{field} must be a list of strings")

    items = [v.strip() for v in value if v and v.strip()]
    if unique:
        items = list(dict.fromkeys(items))
    if len(items) > max_items:
        raise InvalidInputError(f"{field} accepts at most {max_items} items")
    return items
