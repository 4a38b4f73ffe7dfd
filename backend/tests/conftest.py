from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

import azurite.models  # noqa: F401 - register all tables
from azurite.auth import create_access_token, hash_password
from azurite.database import get_session, make_engine
from azurite.main import app
from azurite.models.game import Game
from azurite.models.mod import Mod, ScanResult
from azurite.models.user import Role, User
from azurite.services.blob_store import BlobStore, get_blob_store
from azurite.services.scan_engine import ScanEngine, ScanVerdict, get_scan_engine

PASSWORD = "password123"
_PASSWORD_HASH = hash_password(PASSWORD)


class RecordingScanEngine(ScanEngine):
    """Collects submissions so tests decide when and how verdicts arrive."""

    def __init__(self, engine) -> None:
        super().__init__(engine)
        self.submitted: list[tuple[int, int | None]] = []

    def submit(self, mod_id: int, file_id: int | None = None) -> None:
        self.submitted.append((mod_id, file_id))

    def deliver_all(self, verdict: ScanVerdict | None = None) -> None:
        for mod_id, _file_id in self.submitted:
            self.deliver(mod_id, verdict or ScanVerdict.clean())
        self.submitted.clear()


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def scan_engine(engine, monkeypatch):
    recorder = RecordingScanEngine(engine)
    monkeypatch.setattr("azurite.services.scan_engine._scan_engine", recorder)
    return recorder


@pytest.fixture
def blob_store(tmp_path):
    return BlobStore(tmp_path / "mods")


@pytest.fixture
def session(engine, monkeypatch):
    monkeypatch.setattr("azurite.database.engine", engine)
    with Session(engine) as sess:
        yield sess


@pytest.fixture
def client(engine, scan_engine, blob_store, monkeypatch):
    monkeypatch.setattr("azurite.database.engine", engine)
    # The engine fixture owns disposal; skip the shutdown checkpoint.
    monkeypatch.setattr("azurite.main.checkpoint_and_close", lambda: None)

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as sess:
            yield sess

    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_scan_engine] = lambda: scan_engine
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    counter = iter(range(1, 10_000))

    def _make(
        username: str | None = None,
        role: str = Role.USER.value,
        email: str | None = None,
        is_active: bool = True,
    ) -> User:
        n = next(counter)
        username = username or f"user{n}"
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=_PASSWORD_HASH,
            display_name=username.title(),
            role=role,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_game(session):
    def _make(name: str = "Test Game", slug: str | None = None, is_active: bool = True) -> Game:
        game = Game(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            is_active=is_active,
        )
        session.add(game)
        session.commit()
        session.refresh(game)
        return game

    return _make


@pytest.fixture
def make_mod(session):
    """Insert a mod row directly; ``visible`` marks it scanned clean."""

    def _make(
        game: Game,
        owner: User,
        name: str = "Test Mod",
        slug: str | None = None,
        visible: bool = True,
        downloads: int = 0,
        description: str = "",
    ) -> Mod:
        mod = Mod(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            version="1.0.0",
            description=description,
            game_id=game.id,
            owner_id=owner.id,
            downloads=downloads,
            is_scanned=visible,
            scan_result=ScanResult.CLEAN.value if visible else ScanResult.PENDING.value,
        )
        session.add(mod)
        game.mod_count += 1
        session.add(game)
        session.commit()
        session.refresh(mod)
        return mod

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers
