"""
Application settings read from environment variables.

Values are read once when this module is imported, so environment variables
must be set before the app is created.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Settings for the API, the store and token issuance."""

    project_name: str = os.getenv("PROJECT_NAME", "Donation Platform API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    database_url: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "assignment")

    jwt_secret: str = os.getenv("JWT_SECRET", "change_me")
    # Same format as the frontend uses: "3600", "30m", "12h", "1d"
    expires_in: str = os.getenv("EXPIRES_IN", "1d")
    password_hash_iterations: int = int(os.getenv("PASSWORD_HASH_ITERATIONS", "100000"))

    leaderboard_limit: int = int(os.getenv("LEADERBOARD_LIMIT", "10"))

    # Only one origin is allowed, with credentials, so the auth cookie travels.
    cors_origin: str = os.getenv("CORS_ORIGIN", "http://localhost:5173")
    port: int = int(os.getenv("PORT", "5000"))


settings = Settings()
