"""
Process configuration.

``Settings`` is read from environment variables (a local ``.env`` file is
loaded first when present) and handed to ``create_app``.  Nothing else in
the application reads the environment, so tests can build their own
``Settings`` directly.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

DEFAULT_JWT_SECRET = "dev_secret"


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass(frozen=True)
class Settings:
    """Application settings.  Defaults are suitable for local development only."""

    project_name: str = "Shop API"
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"

    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "shop"

    # The default secret is public; override JWT_SECRET in any real deployment.
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7
    bcrypt_rounds: int = 10

    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            project_name=os.getenv("PROJECT_NAME", "Shop API"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "4000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            mongo_uri=os.getenv("MONGO_URI") or "mongodb://localhost:27017",
            db_name=os.getenv("DB_NAME") or "shop",
            jwt_secret=os.getenv("JWT_SECRET") or DEFAULT_JWT_SECRET,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            token_expire_days=int(os.getenv("TOKEN_EXPIRE_DAYS", "7")),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
        )
