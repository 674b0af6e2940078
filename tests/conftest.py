from __future__ import annotations

import os

# Settings are read at import time; configure them before importing the app.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AUDIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_SALT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")

import hashlib
from dataclasses import dataclass

import pytest
from botocore.exceptions import ClientError
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token, hash_password
from app.db.base import Base, get_db
from app.domain.company import Company, User
from app.domain.mixins import utcnow
from app.main import app as fastapi_app
from app.repositories.user import CompanyAccessRepository, CompanyRepository, UserRepository
from app.services.storage import StorageService

PASSWORD = "Sup3r-secret!"


@dataclass
class Tenant:
    user: User
    company: Company
    role: str

    @property
    def headers(self) -> dict[str, str]:
        return auth_headers(self.user, self.company.id, self.role)


def auth_headers(user: User, company_id: str | None, role: str = "user") -> dict[str, str]:
    token = create_access_token(
        user_id=user.id,
        username=user.username,
        email=user.email,
        company_id=company_id,
        role=role,
        is_super_admin=user.is_super_admin,
    )
    headers = {"Authorization": f"Bearer {token}"}
    if company_id:
        headers["X-Company-ID"] = company_id
    return headers


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def client(session_factory):
    async def _get_db():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = _get_db
    transport = ASGITransport(app=fastapi_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_tenant(session_factory):
    """Factory: seed (company, user, access row) and return a Tenant."""

    async def _make(
        username: str = "alice",
        *,
        role: str = "owner",
        company_code: str = "ACME",
        is_super_admin: bool = False,
        password: str = PASSWORD,
        phone: str | None = None,
    ) -> Tenant:
        async with session_factory() as s:
            companies = CompanyRepository(s)
            company = await companies.get_by_code(company_code)
            if company is None:
                company = await companies.create(name=f"{company_code} Ltd", company_code=company_code)
            user = await UserRepository(s).create(
                username=username,
                email=f"{username}@example.com",
                phone=phone,
                password_hash=hash_password(password),
                first_name=username.title(),
                is_super_admin=is_super_admin,
            )
            await CompanyAccessRepository(s).grant(user.id, company.id, role)
            await s.commit()
        return Tenant(user=user, company=company, role=role)

    return _make


@pytest.fixture
async def tenant(make_tenant) -> Tenant:
    return await make_tenant()



class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls StorageService makes."""

    def __init__(self):
        self.objects: dict[tuple[str, str], dict] = {}

    def put_object(self, *, Bucket, Key, Body, ContentType, Metadata):
        etag = f'"{hashlib.md5(Body).hexdigest()}"'
        self.objects[(Bucket, Key)] = {
            "Body": Body,
            "ContentType": ContentType,
            "ContentLength": len(Body),
            "Metadata": dict(Metadata),
            "ETag": etag,
            "LastModified": utcnow(),
        }
        return {"ETag": etag}

    def head_object(self, *, Bucket, Key):
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {k: v for k, v in obj.items() if k != "Body"}

    def delete_object(self, *, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        return {}

    def generate_presigned_url(self, *, ClientMethod, Params, ExpiresIn):
        return (
            f"https://s3.test/{Params['Bucket']}/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake-{ClientMethod}"
        )


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def storage(s3_client) -> StorageService:
    return StorageService(client=s3_client, bucket="test-bucket")
