"""Test configuration and shared fixtures."""

import itertools
import os
from datetime import datetime, timedelta

# The application module reads its configuration at import time
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['REDIS_URL'] = ''
os.environ['TESTING'] = '1'
os.environ['SECRET_KEY'] = 'polydate-test-secret-key-0123456789abcdef'
os.environ.pop('IDENTITY_SHARED_SECRET', None)
os.environ.pop('PRODUCTION', None)

import logging

import pytest

import polydate_backend
from polydate_backend import app as flask_app, db
from auth.jwt_handler import generate_token
from models.profile import Profile
from utils.helpers import profile_id_for


# ============================================================================
# Fakes
# ============================================================================

class FakeRedis:
    """In-memory stand-in for the handful of redis calls the cache uses."""

    def __init__(self):
        self.store = {}
        self.fail = False

    def get(self, key):
        if self.fail:
            raise ConnectionError('redis down')
        return self.store.get(key)

    def setex(self, key, ttl, value):
        if self.fail:
            raise ConnectionError('redis down')
        self.store[key] = value

    def delete(self, *keys):
        if self.fail:
            raise ConnectionError('redis down')
        for key in keys:
            self.store.pop(key, None)


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def app():
    """Application context with fresh tables for each test."""
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def logger():
    return logging.getLogger('polydate.tests')


@pytest.fixture
def fake_redis():
    return FakeRedis()


# ============================================================================
# Profile Fixtures
# ============================================================================

@pytest.fixture
def make_profile(app):
    """Factory for stored profiles; creation times increase with each call."""
    counter = itertools.count(1)
    base_time = datetime(2026, 1, 1, 12, 0, 0)

    def _make(first_name, gender=None, looking_for=None, is_active=True, external_id=None):
        n = next(counter)
        external_id = external_id or 1000 + n
        profile = Profile(
            id=profile_id_for(external_id),
            telegram_id=external_id,
            first_name=first_name,
            gender=gender,
            looking_for=looking_for,
            is_active=is_active,
            photos=[],
            interests=[],
            created_at=base_time + timedelta(minutes=n)
        )
        db.session.add(profile)
        db.session.commit()
        return profile

    return _make


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def services(app):
    """The service instances wired by the application module."""
    return polydate_backend


# ============================================================================
# Test Utilities
# ============================================================================

@pytest.fixture
def auth_headers(app):
    def _headers(user_id, display_name=None):
        token = generate_token(user_id, display_name=display_name)
        return {'Authorization': f'Bearer {token}'}

    return _headers
