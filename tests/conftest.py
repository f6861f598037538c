import pytest
from learnflow.domain.entities import Chapter, Course, Lesson, Task


@pytest.fixture(autouse=True)
def redis_unavailable(monkeypatch):
    """Redis в тестах недоступен: кэш работает как постоянный промах"""
    def _no_redis():
        raise ConnectionError("redis disabled in tests")
    monkeypatch.setattr("learnflow.infrastructure.cache.get_redis", _no_redis)

@pytest.fixture
def small_curriculum():
    """1 курс, 1 глава, 2 урока: у первого задания на 10 и 20 XP, у второго заданий нет"""
    return [
        Course(
            id="c1",
            name="QA/QC Fundamentals",
            chapters=(
                Chapter(
                    id="ch1",
                    name="Basics",
                    lessons=(
                        Lesson(id="l1", name="Lesson 1", tasks=(
                            Task(id="t1", title="Task 1", xp=10),
                            Task(id="t2", title="Task 2", xp=20),
                        )),
                        Lesson(id="l2", name="Lesson 2"),
                    ),
                ),
            ),
        )
    ]


@pytest.fixture
def test_engine():
    """Тестовая БД в памяти, одна на тест"""
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool
    from learnflow.infrastructure.models import Base

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    from sqlalchemy.orm import sessionmaker
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
