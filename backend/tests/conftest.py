import os
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta
from typing import Any

# Keep the app's module-level engine and log files out of the source tree
_SCRATCH = tempfile.mkdtemp(prefix="vault-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", os.path.join(_SCRATCH, "logs"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_SCRATCH, "uploads"))
os.environ.setdefault("GEMINI_API_KEY", "")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vault.config import Settings  # noqa: E402
from vault.database import init_db  # noqa: E402
from vault.schemas.extracted import ExtractedFields, build_extracted_data  # noqa: E402
from vault.services.access_gate import AccessGate  # noqa: E402
from vault.services.document_store import DocumentStore  # noqa: E402
from vault.services.file_store import FileStore  # noqa: E402
from vault.services.locker_service import LockerService  # noqa: E402
from vault.utils.locks import KeyedLock  # noqa: E402


class FakeClock:
    """Controllable utc clock."""

    def __init__(self, start: datetime = datetime(2025, 1, 15, 10, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now += timedelta(**kwargs)


class StubOCR:
    """Returns queued field values instead of calling Gemini."""

    def __init__(self) -> None:
        self.queue: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str]] = []

    def will_return(self, values: dict[str, Any]) -> None:
        self.queue.append(values)

    async def extract(self, contents: bytes, mime_type: str, document_type: Any, timeout: float | None = None) -> ExtractedFields:
        self.calls.append((mime_type, str(getattr(document_type, "value", document_type))))
        values = self.queue.pop(0) if self.queue else {"raw_text": "", "confidence": 0}
        return build_extracted_data(document_type, values)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        PIN_HASH_ROUNDS=4,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_DIR=str(tmp_path / "logs"),
        OCR_ENABLED=False,
        GEMINI_API_KEY="",
    )


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine: Engine) -> Generator[Session, None, None]:
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def locks() -> KeyedLock:
    return KeyedLock()


@pytest.fixture()
def store(db: Session) -> DocumentStore:
    return DocumentStore(db)


@pytest.fixture()
def gate(store: DocumentStore, settings: Settings, clock: FakeClock, locks: KeyedLock) -> AccessGate:
    return AccessGate(store, settings, clock, locks)


@pytest.fixture()
def stub_ocr() -> StubOCR:
    return StubOCR()


@pytest.fixture()
def service(db: Session, settings: Settings, stub_ocr: StubOCR, clock: FakeClock, locks: KeyedLock) -> LockerService:
    return LockerService(db, settings=settings, ocr=stub_ocr, files=FileStore(settings), clock=clock, locks=locks)
