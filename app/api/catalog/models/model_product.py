# app/api/catalog/models/model_product.py
from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Boolean, Index

from app.database.db_connection import Base
from app.utils.database_utils import now_trimmed


class ProductModel(Base):
    """
    Produto do cardápio.

    `price` fica na menor unidade da moeda (ex.: satang, 1/100 do baht).
    Itens de pedido copiam nome e preço no momento em que são lançados,
    então alterar/desativar um produto nunca afeta pedidos existentes.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("idx_products_category", "category"),
        Index("idx_products_is_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(BigInteger, nullable=False)
    category = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), default=now_trimmed, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_trimmed, onupdate=now_trimmed, nullable=False)
