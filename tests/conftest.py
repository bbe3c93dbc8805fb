import pytest

from stageflow.core.database import create_session
from stageflow.models import Stage, StageType, new_stage_id
from stageflow.pipeline.sql.executor import DuckDBEngine
from stageflow.repositories.pipeline_repository import PipelineStore
from stageflow.services.materialization_service import MaterializationService


CUSTOMERS_CSV = b"id,name,region\n1,Ada,north\n2,Bob,south\n3,Cy,north\n"
ORDERS_CSV = b"order_id,cust_id,amount\n10,1,50\n11,1,150\n12,2,200\n13,3,75\n"


def make_stage(stage_type, data=None, description="", stage_id=None):
    return Stage(
        id=stage_id or new_stage_id(),
        type=StageType(stage_type),
        description=description,
        data=data or {},
    )


@pytest.fixture
def engine():
    eng = DuckDBEngine(":memory:")
    yield eng
    eng.close()


@pytest.fixture
def store():
    return PipelineStore()


@pytest.fixture
def materializer(engine, store):
    return MaterializationService(engine, store, preview_rows=5)


@pytest.fixture
def session():
    s = create_session(database=":memory:", llm_enabled=False)
    yield s
    s.engine.close()


@pytest.fixture
def loaded_session(session):
    """Session with customers and orders uploaded"""
    session.pipeline.load_csv("customers.csv", CUSTOMERS_CSV)
    session.pipeline.load_csv("orders.csv", ORDERS_CSV)
    return session
