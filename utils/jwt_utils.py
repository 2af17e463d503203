"""JWT utilities for API session tokens"""

import jwt
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from config import settings


class JWTManager:
    """Handles session token creation and verification"""

    def __init__(self):
        self.algorithm = "HS256"
        self.audience = "session"
        self.issuer = "ailearning-api"

    def create_session_token(self, user_id: int, method: str = "email", expires_hours: Optional[int] = None) -> str:
        """
        Create a session token after a successful login

        Args:
            user_id: The internal user ID
            method: How the user signed in (email or telegram)
            expires_hours: Session token expiry in hours (default: SESSION_TTL_HOURS)

        Returns:
            JWT session token
        """
        now = datetime.now(timezone.utc)
        expires_hours = expires_hours or settings.SESSION_TTL_HOURS

        payload = {
            "sub": str(user_id),
            "auth_method": method,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "exp": now + timedelta(hours=expires_hours),
            "aud": self.audience,
            "iss": self.issuer,
        }

        return jwt.encode(payload, settings.SESSION_SECRET, algorithm=self.algorithm)

    def verify_session_token(self, token: str) -> Optional[Dict]:
        """
        Verify a session token

        Args:
            token: The session JWT token to verify

        Returns:
            Decoded payload if valid, None if invalid
        """
        try:
            payload = jwt.decode(
                token,
                settings.SESSION_SECRET,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

        if not str(payload.get("sub", "")).isdigit():
            return None
        return payload


# Global instance
jwt_manager = JWTManager()
