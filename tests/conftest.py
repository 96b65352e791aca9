from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from auth import Actor
from models import Base, User


@pytest.fixture
def db() -> Iterator[Session]:
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _user(db: Session, role: str, email: str, **extra: Any) -> User:
    user = User(role=role, email=email, **extra)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def admin(db: Session) -> Actor:
    return Actor.from_user(_user(db, "administrator", "admin@nstb.test"))


@pytest.fixture
def examiner(db: Session) -> Actor:
    return Actor.from_user(_user(db, "examiner", "examiner@nstb.test"))


@pytest.fixture
def teacher(db: Session) -> Actor:
    return Actor.from_user(_user(db, "teacher", "teacher@nstb.test"))


@pytest.fixture
def student(db: Session) -> User:
    return _user(db, "student", "s1@nstb.test", first_name="Marie", last_name="Kalo", student_number="S1")


@pytest.fixture
def student_actor(student: User) -> Actor:
    return Actor.from_user(student)
