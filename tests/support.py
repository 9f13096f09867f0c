import asyncio
import fnmatch
import os
import shutil
import tempfile
import unittest
import uuid

from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import func, select
from sqlalchemy.pool import NullPool

from resi_app.app import create_app
from resi_app.core.breaker import CircuitBreaker
from resi_app.core.cache import Cache
from resi_app.core.get_db import Base, build_engine, build_session_factory
from resi_app.core.security import issue_access_token
from resi_app.core.uploads import AttachmentProcessor
from resi_app.email_notify.notifications import NotificationDispatcher
from resi_app.email_notify.templates import render
from resi_app.models.enums import PropertyType, UnitType, UserRole
from resi_app.models.models import Property, Tenant, Unit, User

PASSWORD = "rahasia123"


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cache layer."""

    def __init__(self):
        self.store = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        pass


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self):
        super().__init__()
        self.sent = []

    async def dispatch(self, notifications):
        for notification in notifications:
            render(notification.template, notification.context)
            self.sent.append(notification)

    def templates(self):
        return [n.template for n in self.sent]

    def recipients(self, template):
        return [n.recipient for n in self.sent if n.template == template]


class ApiTestCase(unittest.TestCase):
    """Boots the app against a throwaway SQLite database."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.engine = build_engine(
            f"sqlite+aiosqlite:///{self.tmpdir}/test.db", poolclass=NullPool
        )
        self.session_factory = build_session_factory(self.engine)
        self.run_async(self._create_tables())

        self.redis = FakeRedis()
        self.cache = Cache(breaker=CircuitBreaker(name="test-cache"))
        self.cache.redis = self.redis
        self.dispatcher = RecordingDispatcher()
        self.attachments = AttachmentProcessor(upload_dir=os.path.join(self.tmpdir, "uploads"))

        self.app = create_app(
            session_factory=self.session_factory,
            cache=self.cache,
            dispatcher=self.dispatcher,
            attachments=self.attachments,
        )
        self.client = TestClient(self.app)

    def tearDown(self):
        self.client.close()
        self.run_async(self.engine.dispose())
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    @staticmethod
    def run_async(coro):
        return asyncio.run(coro)

    async def _create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def seed(self, *entities):
        async def add():
            async with self.session_factory() as session:
                session.add_all(entities)
                await session.commit()

        self.run_async(add())
        return entities[0] if len(entities) == 1 else entities

    def fetch(self, model, entity_id):
        async def load():
            async with self.session_factory() as session:
                return await session.get(model, entity_id)

        return self.run_async(load())

    def count(self, model):
        async def load():
            async with self.session_factory() as session:
                return (await session.execute(select(func.count()).select_from(model))).scalar()

        return self.run_async(load())

    def make_tenant(self, code="GRN", name="Green Residence"):
        return self.seed(
            Tenant(
                id=uuid.uuid4(),
                name=name,
                code=code,
                contact_email=f"{code.lower()}@resismart.id",
            )
        )

    def make_user(self, tenant, role=UserRole.ADMIN, email=None, name="Budi Santoso"):
        user = User(
            id=uuid.uuid4(),
            tenant_id=tenant.id if tenant else None,
            name=name,
            email=email or f"{role.value}.{uuid.uuid4().hex[:6]}@resismart.id",
            role=role,
            is_verified=True,
        )
        user.set_password(PASSWORD)
        return self.seed(user)

    def make_property(self, tenant, name="Menara Hijau", city="Jakarta", price=1500000.0):
        return self.seed(
            Property(
                id=uuid.uuid4(),
                tenant_id=tenant.id,
                name=name,
                description="Apartemen nyaman di pusat kota",
                street="Jl. Sudirman No. 1",
                city=city,
                state="DKI Jakarta",
                postal_code="10220",
                total_units=20,
                price=price,
                property_type=PropertyType.APARTMENT,
                amenities=["parking", "pool"],
                images=[],
            )
        )

    def make_unit(self, prop, number="A-101", price=2000000.0, **extra):
        return self.seed(
            Unit(
                id=uuid.uuid4(),
                tenant_id=prop.tenant_id,
                property_id=prop.id,
                unit_number=number,
                floor=1,
                type=UnitType.TWO_BR,
                size=45.0,
                price=price,
                amenities=[],
                images=[],
                documents=[],
                **extra,
            )
        )

    @staticmethod
    def auth(user):
        return {"Authorization": f"Bearer {issue_access_token(user)}"}
