import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from catalog.config import settings
from catalog.database import Base, build_engine, build_session_factory, get_db
from catalog.main import app
from catalog.models.file import File
from catalog.models.product import Product
from catalog.models.sale import Sale


def make_token(sub="42", expires_in=timedelta(hours=1), secret=None, **claims):
    payload = {"exp": datetime.now(timezone.utc) + expires_in, **claims}
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
async def file_record(session_factory):
    async with session_factory() as session:
        file = File(
            id=str(uuid.uuid4()),
            uri="https://cdn.example.com/images/chair.jpg",
            thumbnail_uri="https://cdn.example.com/images/chair_thumb.jpg",
        )
        session.add(file)
        await session.commit()
        return file


@pytest.fixture
def add_product(session_factory, file_record):
    """Insert a product row directly, bypassing the API."""
    async def _add_product(**overrides):
        values = {
            "name": "Chair01",
            "category": "Furniture",
            "qty": 3,
            "price": 150.0,
            "sku": f"SKU-{uuid.uuid4().hex[:8]}",
            "file_id": file_record.id,
        }
        values.update(overrides)
        async with session_factory() as session:
            product = Product(**values)
            session.add(product)
            await session.commit()
            await session.refresh(product)
            return product

    return _add_product


@pytest.fixture
def add_sales(session_factory):
    async def _add_sales(product_id, *sold_at):
        async with session_factory() as session:
            session.add_all([Sale(product_id=product_id, sold_at=ts) for ts in sold_at])
            await session.commit()

    return _add_sales
