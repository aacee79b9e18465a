import logging

from sqlalchemy import func, inspect

from .db_connection import engine, Base, SessionLocal
from app.config.settings import SEED_DEFAULT_PRODUCTS

logger = logging.getLogger(__name__)

TABELAS_PRINCIPAIS = ("products", "orders", "order_items", "order_logs")

# Cardápio padrão (preços em satang: 1 baht = 100 satang)
PRODUTOS_PADRAO = [
    # Pratos principais
    {"name": "Pad Thai", "price": 8900, "category": "FOOD"},
    {"name": "Green Curry with Rice", "price": 9500, "category": "FOOD"},
    {"name": "Red Curry with Rice", "price": 9500, "category": "FOOD"},
    {"name": "Massaman Curry", "price": 10500, "category": "FOOD"},
    {"name": "Basil Chicken Rice", "price": 7500, "category": "FOOD"},
    {"name": "Pineapple Fried Rice", "price": 9900, "category": "FOOD"},
    {"name": "Tom Yum Fried Rice", "price": 8900, "category": "FOOD"},
    {"name": "Crispy Pork Rice", "price": 7900, "category": "FOOD"},
    # Noodles
    {"name": "Boat Noodles", "price": 5500, "category": "FOOD"},
    {"name": "Tom Yum Noodles", "price": 6500, "category": "FOOD"},
    {"name": "Pad See Ew", "price": 7500, "category": "FOOD"},
    {"name": "Drunken Noodles", "price": 7900, "category": "FOOD"},
    # Entradas e sopas
    {"name": "Spring Rolls (4 pcs)", "price": 5900, "category": "FOOD"},
    {"name": "Chicken Satay (4 pcs)", "price": 7900, "category": "FOOD"},
    {"name": "Tom Yum Goong", "price": 12900, "category": "FOOD"},
    {"name": "Tom Kha Gai", "price": 9900, "category": "FOOD"},
    # Sobremesas
    {"name": "Mango Sticky Rice", "price": 7900, "category": "FOOD"},
    {"name": "Coconut Ice Cream", "price": 4900, "category": "FOOD"},
    # Bebidas
    {"name": "Thai Iced Tea", "price": 4500, "category": "DRINK"},
    {"name": "Thai Iced Coffee", "price": 4500, "category": "DRINK"},
    {"name": "Fresh Coconut", "price": 5500, "category": "DRINK"},
    {"name": "Lemon Soda", "price": 3500, "category": "DRINK"},
    {"name": "Sparkling Water", "price": 2500, "category": "DRINK"},
    {"name": "Mango Smoothie", "price": 5500, "category": "DRINK"},
    {"name": "Hot Coffee", "price": 4000, "category": "DRINK"},
]


def importar_models():
    # Registra todos os models no Base antes do create_all
    from app.api.catalog.models.model_product import ProductModel  # noqa: F401
    from app.api.orders.models import OrderModel, OrderItemModel, OrderLogModel  # noqa: F401


def verificar_banco_inicializado(bind=None) -> bool:
    """Verifica se as tabelas principais existem."""
    existentes = set(inspect(bind or engine).get_table_names())
    return all(nome in existentes for nome in TABELAS_PRINCIPAIS)


def criar_tabelas(bind=None):
    """create_all idempotente (checkfirst)."""
    importar_models()
    bind = bind or engine
    tabelas = list(Base.metadata.sorted_tables)
    logger.info(f"📋 Criando/verificando {len(tabelas)} tabelas: {', '.join(t.name for t in tabelas)}")
    Base.metadata.create_all(bind=bind, checkfirst=True)


def criar_produtos_padrao(session_factory=None):
    """Popula o cardápio apenas se a tabela de produtos estiver vazia."""
    from app.api.catalog.models.model_product import ProductModel
    from app.utils.database_utils import now_trimmed

    session_factory = session_factory or SessionLocal
    with session_factory() as session:
        total = session.query(func.count(ProductModel.id)).scalar()
        if total:
            logger.info(f"ℹ️ Produtos já cadastrados ({total}); pulando seed do cardápio.")
            return 0

        now = now_trimmed()
        session.add_all(
            ProductModel(**dados, is_active=True, created_at=now, updated_at=now)
            for dados in PRODUTOS_PADRAO
        )
        session.commit()

    logger.info(f"✅ {len(PRODUTOS_PADRAO)} produtos padrão criados.")
    return len(PRODUTOS_PADRAO)


def inicializar_banco():
    logger.info("🚀 Iniciando processo de inicialização do banco de dados...")

    logger.info("📋 Passo 1/2: Criando/verificando tabelas...")
    criar_tabelas()

    if not verificar_banco_inicializado():
        raise RuntimeError("Tabelas principais ausentes após create_all")

    if SEED_DEFAULT_PRODUCTS:
        logger.info("🍜 Passo 2/2: Criando/verificando cardápio padrão...")
        criar_produtos_padrao()
    else:
        logger.info("ℹ️ Passo 2/2: Seed do cardápio desabilitado (SEED_DEFAULT_PRODUCTS).")

    logger.info("✅ Banco inicializado com sucesso.")
