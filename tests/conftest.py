"""pytest fixtures for Cimaise tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- postgres_url: Session-scoped testcontainer PostgreSQL with migrations applied
  (skipped when Docker is unavailable)
- make_alembic_config: Alembic Config for an arbitrary database URL
- engine: Function-scoped database, run once on SQLite (file in tmp_path) and
  once on PostgreSQL
- session / uow_factory: Database access for repository and service tests
- app_settings: Settings pointing storage, media and lock files into tmp_path
- fake_encoder: Encoder spy that writes placeholder files and can fail on demand
- seed: Helper creating an album with images backed by a real JPEG
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from PIL import Image as PILImage
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from testcontainers.postgres import PostgresContainer

from cimaise.core.config import Settings
from cimaise.core.database import create_db_engine, create_schema
from cimaise.core.locking import FileLock
from cimaise.models.album import Album
from cimaise.models.image import Image
from cimaise.models.image_variant import ImageFormat
from cimaise.services.exceptions import EncodingError, SourceImageError
from cimaise.services.imaging.encoder import RenderedImage
from cimaise.services.site_settings import SiteSettingsService
from cimaise.services.variants.generator import VariantGenerator
from cimaise.uow import create_uow_factory
from cimaise.workers.variant_maintenance import MaintenanceScheduler

SOURCE_WIDTH = 1600
SOURCE_HEIGHT = 1000
TODAY = "2026-10-19"
ROOT = Path(__file__).resolve().parent.parent


class FakeEncoder:
    """ImageEncoder spy.

    Writes a small placeholder file at the destination, reports the width the
    real encoder would produce (never upscaled), and raises EncodingError for
    (format, width) pairs listed in fail_on.
    """

    def __init__(self):
        self.calls: list[tuple[str, int]] = []
        self.blur_calls: list[Path] = []
        self.fail_on: set[tuple[str, int]] = set()
        self.fail_blur = False

    def render(self, source, destination, width, fmt: ImageFormat, quality):
        self.calls.append((fmt.value, width))
        if (fmt.value, width) in self.fail_on:
            raise EncodingError(f"simulated failure for {fmt.value}@{width}")
        if not source.is_file():
            raise SourceImageError(f"Source file not found: {source}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"variant")
        out_width = min(width, SOURCE_WIDTH)
        return RenderedImage(destination, out_width, round(SOURCE_HEIGHT * out_width / SOURCE_WIDTH))

    def render_blur(self, source, destination, width, radius, quality):
        self.blur_calls.append(destination)
        if self.fail_blur:
            raise EncodingError("simulated blur failure")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"blur")
        return RenderedImage(destination, width, round(SOURCE_HEIGHT * width / SOURCE_WIDTH))


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


def alembic_config(db_url: str) -> Config:
    """Alembic Config for the repository migrations against ``db_url``."""
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    config.set_main_option("sqlalchemy.url", db_url)
    return config


@pytest.fixture
def make_alembic_config():
    """Return a factory building an Alembic Config for a database URL."""
    return alembic_config


@pytest.fixture(scope="session")
def postgres_url():
    """Provide session-scoped PostgreSQL container with migrations applied.

    Container starts once per test session and is reused across all tests.
    Tests depending on it are skipped when no Docker daemon is reachable.
    """
    try:
        container = PostgresContainer(
            image="postgres:17",
            username="test",
            password="test",
            dbname="test_cimaise",
        )
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    try:
        db_url = container.get_connection_url(driver="psycopg")

        # Sync fixture: alembic's env.py calls asyncio.run(), no loop is running here
        command.upgrade(alembic_config(db_url), "head")

        yield db_url
    finally:
        container.stop()


@pytest.fixture(params=["sqlite", pytest.param("postgresql", marks=pytest.mark.postgres)])
def database_url(request, tmp_path) -> str:
    """Database URL for one test run: a SQLite file or the shared PostgreSQL container."""
    if request.param == "postgresql":
        return request.getfixturevalue("postgres_url")
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest_asyncio.fixture(scope="function")
async def engine(database_url) -> AsyncGenerator[AsyncEngine, None]:
    """Provide a fresh database per test.

    SQLite uses a file (not :memory:) so that independent sessions see each
    other's commits, like separate processes sharing one database. The
    PostgreSQL schema comes from the migrations and is truncated after each test.
    """
    engine = create_db_engine(database_url, pool_size=5)
    if engine.dialect.name == "sqlite":
        await create_schema(engine)

    yield engine

    if engine.dialect.name == "postgresql":
        async with engine.begin() as conn:
            await conn.execute(
                text("TRUNCATE image_variants, images, albums, settings RESTART IDENTITY CASCADE")
            )
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(session_factory)


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        app_env="test",
        storage_base_dir=tmp_path / "data",
        public_dir=tmp_path / "public",
        maintenance_lock_file=tmp_path / "tmp" / "variants_daily.lock",
        maintenance_last_run_file=tmp_path / "tmp" / "variants_daily_lastrun.txt",
    )


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def site_settings(uow_factory) -> SiteSettingsService:
    return SiteSettingsService(uow_factory)


@pytest_asyncio.fixture
async def variant_matrix(site_settings):
    """Configure 2 formats x 2 breakpoints (expected count 4)."""
    await site_settings.set("image.formats", {"avif": False, "webp": True, "jpg": True})
    await site_settings.set("image.breakpoints", {"sm": 400, "md": 800})
    return {"formats": ["webp", "jpg"], "breakpoints": {"sm": 400, "md": 800}, "expected": 4}


@pytest.fixture
def generator(uow_factory, site_settings, fake_encoder, app_settings) -> VariantGenerator:
    return VariantGenerator(uow_factory, site_settings, fake_encoder, app_settings)


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def scheduler(uow_factory, site_settings, generator, app_settings, fixed_clock) -> MaintenanceScheduler:
    return MaintenanceScheduler(
        uow_factory=uow_factory,
        site_settings=site_settings,
        generator=generator,
        last_run_file=app_settings.maintenance_last_run_file,
        lock=FileLock(app_settings.maintenance_lock_file),
        clock=fixed_clock,
    )


@pytest.fixture
def source_jpeg(app_settings) -> str:
    """Write a real 1600x1000 JPEG original and return its storage path."""
    storage_path = "/storage/originals/sample.jpg"
    file_path = app_settings.storage_base_dir / storage_path.lstrip("/")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    PILImage.new("RGB", (SOURCE_WIDTH, SOURCE_HEIGHT), (180, 90, 40)).save(file_path, "JPEG")
    return storage_path


@pytest.fixture
def seed(uow_factory, source_jpeg):
    """Return a coroutine creating one album with N images.

    Usage:
        album_id, image_ids = await seed(images=2, is_nsfw=True)
    """

    async def _seed(
        images: int = 1,
        title: str = "Album",
        is_nsfw: bool = False,
        password_hash: str | None = None,
        original_path: str | None = None,
    ) -> tuple[int, list[int]]:
        async with await uow_factory() as uow:
            album = await uow.albums.add(
                Album(title=title, is_nsfw=is_nsfw, password_hash=password_hash)
            )
            image_ids = []
            for index in range(images):
                image = await uow.images.add(
                    Image(
                        album_id=album.id,
                        original_path=original_path or source_jpeg,
                        file_hash=f"{album.id:04d}{index:04d}",
                        width=SOURCE_WIDTH,
                        height=SOURCE_HEIGHT,
                        sort_order=index,
                    )
                )
                image_ids.append(image.id)
            album_id = album.id
        return album_id, image_ids

    return _seed
