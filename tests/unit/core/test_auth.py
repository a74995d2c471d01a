"""
Tests for JWT token utilities.

WHY: Analytics are scoped to the survey owner, so identity extraction
must reject expired, tampered and subject-less tokens.
"""

from datetime import timedelta

import pytest
from jose import jwt

from survey_insights.core.auth import (
    create_access_token,
    subject_from_payload,
    verify_token,
)
from survey_insights.core.config import settings
from survey_insights.core.exceptions import TokenExpiredError, TokenInvalidError


class TestTokens:
    """Test token creation and verification."""

    def test_round_trip(self):
        token = create_access_token({"sub": "owner-1"})
        payload = verify_token(token)

        assert payload["sub"] == "owner-1"
        assert "exp" in payload
        assert "iat" in payload

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "owner-1"}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenExpiredError):
            verify_token(token)

    def test_wrong_signature_rejected(self):
        token = jwt.encode({"sub": "owner-1"}, "another-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(TokenInvalidError):
            verify_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(TokenInvalidError):
            verify_token("not-a-jwt")


class TestSubjectFromPayload:
    """Test acting-user extraction from claims."""

    def test_sub_claim(self):
        assert subject_from_payload({"sub": "owner-1"}) == "owner-1"

    def test_sub_wins_over_user_id(self):
        assert subject_from_payload({"sub": "owner-1", "user_id": "other"}) == "owner-1"

    def test_user_id_fallback(self):
        assert subject_from_payload({"user_id": 42}) == "42"

    def test_missing_subject(self):
        with pytest.raises(TokenInvalidError):
            subject_from_payload({"role": "ADMIN"})
