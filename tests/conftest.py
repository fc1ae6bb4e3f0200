"""Pytest fixtures — in-memory SQLite database, one fresh schema per test."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_patio.db")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database import Base, create_tables, get_db
from app.main import app
from app.schemas.audit_log import Actor
from app.schemas.vehicle import VehicleCreate
from app.services import impound_service


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def actor():
    return Actor(user_id=1, username="agente.silva")


@pytest.fixture
def other_actor():
    return Actor(user_id=2, username="perito.souza")


@pytest.fixture
def make_vehicle(db, actor):
    """Register a vehicle through the service so it gets its audit entry."""
    def _make(**overrides):
        data = {
            "placa_original": "ABC1234",
            "marca": "Volkswagen",
            "modelo": "Gol",
            "cor": "Prata",
            "ano": "2020",
            "numero_procedimento": "001-00001/2024",
        }
        data.update(overrides)
        return impound_service.create_vehicle(db, VehicleCreate(**data), actor)
    return _make


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

