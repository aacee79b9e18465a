from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.api.catalog.models.model_product import ProductModel


def _escape_like(term: str) -> str:
    # % e _ são curingas do LIKE
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    # ------------- Queries -------------
    def get_by_id(self, product_id: int) -> Optional[ProductModel]:
        return self.db.get(ProductModel, product_id)

    def get_active_by_ids(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        """Busca em lote (uma query) os produtos ativos; ids repetidos são ignorados."""
        ids = {int(pid) for pid in product_ids}
        if not ids:
            return {}
        rows = (
            self.db.query(ProductModel)
            .filter(ProductModel.id.in_(ids), ProductModel.is_active.is_(True))
            .all()
        )
        return {p.id: p for p in rows}

    def list(
        self,
        *,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[ProductModel], int]:
        query = self.db.query(ProductModel)
        if category:
            query = query.filter(ProductModel.category == category)
        if is_active is not None:
            query = query.filter(ProductModel.is_active.is_(is_active))
        if search:
            term = _escape_like(search.strip())
            query = query.filter(ProductModel.name.ilike(f"%{term}%", escape="\\"))

        total = query.count()
        rows = (
            query.order_by(ProductModel.category.asc(), ProductModel.name.asc(), ProductModel.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def list_active(self) -> List[ProductModel]:
        return (
            self.db.query(ProductModel)
            .filter(ProductModel.is_active.is_(True))
            .order_by(ProductModel.category.asc(), ProductModel.name.asc())
            .all()
        )

    # ------------- Mutations -------------
    def add(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product
