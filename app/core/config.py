
from pydantic import Field
from pydantic_settings import BaseSettings

_DEFAULT_UPLOAD_TYPES = (
    "image/jpeg,image/png,image/gif,application/pdf,text/csv,"
    "application/vnd.ms-excel,"
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = Field(default="Factory ERP API", alias="APP_NAME")
    app_env: str = Field(default="development", alias="APP_ENV")
    app_version: str = Field(default="2.0.0", alias="APP_VERSION")
    app_port: int = Field(default=8000, alias="APP_PORT")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")

    # Database (SQLite for local dev, any async SQLAlchemy URL in production)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./erp_dev.db",
        alias="DATABASE_URL",
    )

    # JWT
    jwt_secret: str = Field(default="change-me-access-secret", alias="JWT_SECRET")
    jwt_refresh_secret: str = Field(default="change-me-refresh-secret", alias="JWT_REFRESH_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_access_expire_minutes: int = Field(default=15, alias="JWT_EXPIRE_MINUTES")
    jwt_refresh_expire_days: int = Field(default=7, alias="JWT_REFRESH_EXPIRE_DAYS")
    jwt_issuer: str = Field(default="factory-erp", alias="JWT_ISSUER")
    jwt_audience: str = Field(default="factory-erp-users", alias="JWT_AUDIENCE")

    # CORS (comma separated)
    cors_origin: str = Field(default="http://localhost:3000", alias="CORS_ORIGIN")
    cors_credentials: bool = Field(default=True, alias="CORS_CREDENTIALS")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_window_seconds: int = Field(default=900, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max_requests: int = Field(default=100, alias="RATE_LIMIT_MAX_REQUESTS")

    # Account security
    bcrypt_salt_rounds: int = Field(default=12, alias="BCRYPT_SALT_ROUNDS")
    max_login_attempts: int = Field(default=5, alias="MAX_LOGIN_ATTEMPTS")
    lockout_minutes: int = Field(default=30, alias="LOCKOUT_MINUTES")
    password_min_length: int = Field(default=8, alias="PASSWORD_MIN_LENGTH")

    # Security headers
    enable_csp: bool = Field(default=True, alias="ENABLE_CONTENT_SECURITY_POLICY")
    enable_hsts: bool = Field(default=True, alias="ENABLE_HSTS")

    # Uploads
    max_upload_size_mb: int = Field(default=10, alias="UPLOAD_MAX_FILE_SIZE_MB")
    max_upload_files: int = Field(default=10, alias="UPLOAD_MAX_FILES")
    upload_allowed_types: str = Field(default=_DEFAULT_UPLOAD_TYPES, alias="UPLOAD_ALLOWED_TYPES")

    # S3-compatible object storage (Contabo)
    s3_endpoint: str = Field(default="https://eu2.contabostorage.com", alias="CONTABO_ENDPOINT")
    s3_region: str = Field(default="EU", alias="CONTABO_REGION")
    s3_bucket: str = Field(default="erp-uploads", alias="CONTABO_BUCKET")
    s3_access_key: str | None = Field(default=None, alias="CONTABO_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="CONTABO_SECRET_KEY")
    s3_public_url: str | None = Field(default=None, alias="CONTABO_PUBLIC_URL")
    s3_presign_expires: int = Field(default=3600, alias="CONTABO_PRESIGN_EXPIRES")

    # Audit trail of write requests
    audit_enabled: bool = Field(default=True, alias="AUDIT_ENABLED")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]

    @property
    def allowed_upload_types(self) -> set[str]:
        return {t.strip() for t in self.upload_allowed_types.split(",") if t.strip()}


settings = Settings()
