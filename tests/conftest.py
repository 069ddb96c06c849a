"""Pytest fixtures for API and service testing."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from modelcodes.main import app
from modelcodes.core.database import get_db
from modelcodes.core.security import create_access_token
from modelcodes.models.base import Base
from modelcodes.models.product_type import ProductType
from modelcodes.models.model_classification import ModelClassification
from modelcodes.models.code_usage import CodeUsageEntry
from modelcodes.services.classification import create_code_classification

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Test client with database override.

    Note: db_session already created tables, so we don't need to create them again.
    """
    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer token for acting user 1."""
    token = create_access_token(data={"sub": "1", "name": "tester"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def product_type(db_session):
    product_type = ProductType(code="PCB")
    db_session.add(product_type)
    db_session.commit()
    db_session.refresh(product_type)
    return product_type


@pytest.fixture
def three_tier_classification(db_session, product_type):
    """Model type SLU- whose codes are grouped under numbered code classifications."""
    model_classification = ModelClassification(
        type="SLU-",
        description=["Standard laminate unit"],
        product_type_id=product_type.id,
        has_code_classification=True,
    )
    db_session.add(model_classification)
    db_session.commit()
    db_session.refresh(model_classification)
    return model_classification


@pytest.fixture
def two_tier_classification(db_session, product_type):
    """Model type ABC- whose codes attach directly to the model classification."""
    model_classification = ModelClassification(
        type="ABC-",
        description=[],
        product_type_id=product_type.id,
        has_code_classification=False,
    )
    db_session.add(model_classification)
    db_session.commit()
    db_session.refresh(model_classification)
    return model_classification


@pytest.fixture
def code_classification(db_session, three_tier_classification):
    """Code classification 1-内层 with its 100 pre-allocated codes SLU-100..SLU-199."""
    result = create_code_classification(
        db_session, three_tier_classification.id, "1-内层", "Inner layer", actor_id=1)
    assert result.success, result.message
    return result.data


@pytest.fixture
def entry_by_model(db_session):
    """Look up the live entry for a composed code, bypassing stale session state."""
    def _lookup(model):
        db_session.expire_all()
        return db_session.query(CodeUsageEntry).filter(
            CodeUsageEntry.model == model,
            CodeUsageEntry.is_deleted == False
        ).first()
    return _lookup


@pytest.fixture
def slu_150(entry_by_model, code_classification):
    """The pre-allocated, still available entry SLU-150."""
    return entry_by_model("SLU-150")


@pytest.fixture
def reject_writes(db_session):
    """Install a trigger that makes the store abort matching writes."""
    def _install(table, operation="INSERT", when=None):
        condition = f"WHEN {when} " if when else ""
        db_session.execute(text(
            f"CREATE TRIGGER reject_{operation.lower()}_{table} BEFORE {operation} ON {table} "
            f"{condition}BEGIN SELECT RAISE(ABORT, 'storage failure'); END"
        ))
        db_session.commit()
    return _install
