import os
import tempfile

# Ambiente de teste: precisa existir antes de importar o app (engine e logger
# são criados no import dos módulos).
_TMP_DIR = tempfile.mkdtemp(prefix="pos-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))
os.environ["SEED_DEFAULT_PRODUCTS"] = "false"
os.environ.setdefault("ORDER_LOCK_STRATEGY", "mutex")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.catalog.models.model_product import ProductModel
from app.api.orders.services.dependencies import get_order_lock_coordinator
from app.api.orders.services.service_order import OrderService
from app.database.db_connection import Base, criar_engine, get_db
from app.database.init_db import importar_models
from app.database.order_lock import KeyedMutex, OrderLockCoordinator
from app.main import app
from app.utils.database_utils import now_trimmed


@pytest.fixture
def engine(tmp_path):
    eng = criar_engine(f"sqlite:///{tmp_path / 'pos.db'}")
    importar_models()
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def mutex():
    return KeyedMutex()


@pytest.fixture
def coordinator(session_factory, mutex):
    return OrderLockCoordinator(
        session_factory,
        strategy="mutex",
        lock_timeout=2,
        multi_lock_timeout=2,
        try_lock_timeout=1,
        mutex=mutex,
    )


@pytest.fixture
def order_service(coordinator):
    return OrderService(coordinator)


@pytest.fixture
def make_product(session_factory):
    def _make(name="Pad Thai", price=1099, category="FOOD", is_active=True) -> int:
        now = now_trimmed()
        with session_factory() as session:
            product = ProductModel(
                name=name,
                price=price,
                category=category,
                is_active=is_active,
                created_at=now,
                updated_at=now,
            )
            session.add(product)
            session.commit()
            return product.id

    return _make


@pytest.fixture
def pad_thai(make_product):
    return make_product("Pad Thai", 1099, "FOOD")


@pytest.fixture
def tom_yum(make_product):
    return make_product("Tom Yum Goong", 10000, "FOOD")


@pytest.fixture
def iced_tea(make_product):
    return make_product("Thai Iced Tea", 4500, "DRINK")


@pytest.fixture
def client(session_factory, coordinator):
    def _get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_order_lock_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()
