"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.checkers.game import Game
from src.core.models import GameModel
from src.core.shared_types import Color
from src.db.database import create_session_factory
from src.db.schema import Base

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of repository independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


@pytest.fixture
def file_session_factory(tmp_path: Path) -> sessionmaker[Session]:
    """
    Sessions on a database file: unlike the in-memory database above, every session gets its own connection.
    Needed to mock two clients racing for the same record.
    """
    return create_session_factory(f"sqlite:///{tmp_path / 'checkers.db'}")


@pytest.fixture
def waiting_game_model() -> GameModel:
    """Fresh game, WHITE seat taken, waiting for an opponent."""
    return Game.new_game(player="player_white", color=Color.WHITE).to_model()
