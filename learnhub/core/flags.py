"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Auth ─────────────────────────────────────────────────────────
    use_auth: bool = Field(default=True, alias="FF_USE_AUTH")
    # ON  → Supabase JWT verified with SUPABASE_JWT_SECRET.
    # OFF → Dev user injected (user_id="dev-user"). No token needed.

    # ── Storage ──────────────────────────────────────────────────────
    use_s3: bool = Field(default=True, alias="FF_USE_S3")
    # ON  → S3-compatible bucket (Supabase Storage). Needs S3_ENDPOINT_URL + keys.
    # OFF → Files kept under LOCAL_STORAGE_PATH/{bucket}/.

    # ── Realtime ─────────────────────────────────────────────────────
    use_redis: bool = Field(default=True, alias="FF_USE_REDIS")
    # ON  → Extraction status published over Redis pub/sub. Needs REDIS_URL.
    # OFF → Notifications silently skipped. Nothing breaks.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
