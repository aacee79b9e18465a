from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from app.api.catalog.models.model_product import ProductModel
from app.api.catalog.repositories.repo_products import ProductRepository
from app.api.catalog.schemas.schema_product import (
    CreateProductRequest,
    ProductListResponse,
    ProductResponse,
    UpdateProductRequest,
)
from app.config.settings import DEFAULT_PAGE_SIZE
from app.core.exceptions import ErrorMessage, NotFoundError, ValidationError
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.pagination import total_pages, validate_pagination


def _validate_price(price) -> int:
    if not isinstance(price, int) or isinstance(price, bool) or price <= 0:
        raise ValidationError(ErrorMessage.PRODUCT_INVALID_PRICE, field="price")
    return price


def product_to_response(product: ProductModel) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        name=product.name,
        price=str(int(product.price)),
        category=product.category,
        is_active=bool(product.is_active),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


class ProductService:
    """
    Cadastro de produtos.

    Alterar preço/nome ou desativar um produto nunca toca em itens de
    pedido já lançados (eles guardam a própria cópia).
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepository(db)

    def _get_or_404(self, product_id: int) -> ProductModel:
        product = self.repo.get_by_id(product_id)
        if not product:
            raise NotFoundError("Produto", product_id)
        return product

    def create_product(self, req: CreateProductRequest) -> ProductResponse:
        now = now_trimmed()
        product = ProductModel(
            name=req.name.strip(),
            price=_validate_price(req.price),
            category=req.category.strip(),
            is_active=req.is_active,
            created_at=now,
            updated_at=now,
        )
        self.repo.add(product)
        logger.info(f"[Produtos] Produto criado - id={product.id} nome={product.name} preco={product.price}")
        return product_to_response(product)

    def get_product(self, product_id: int) -> ProductResponse:
        return product_to_response(self._get_or_404(product_id))

    def update_product(self, product_id: int, req: UpdateProductRequest) -> ProductResponse:
        product = self._get_or_404(product_id)
        data = req.model_dump(exclude_unset=True)

        if "price" in data and data["price"] is not None:
            product.price = _validate_price(data["price"])
        if data.get("name") is not None:
            product.name = data["name"].strip()
        if data.get("category") is not None:
            product.category = data["category"].strip()
        if data.get("is_active") is not None:
            product.is_active = data["is_active"]

        product.updated_at = now_trimmed()
        self.db.flush()
        logger.info(f"[Produtos] Produto atualizado - id={product.id} campos={sorted(data)}")
        return product_to_response(product)

    def deactivate_product(self, product_id: int) -> ProductResponse:
        """Exclusão lógica: o produto some do cardápio mas continua referenciável."""
        product = self._get_or_404(product_id)
        if product.is_active:
            product.is_active = False
            product.updated_at = now_trimmed()
            self.db.flush()
            logger.info(f"[Produtos] Produto desativado - id={product.id}")
        return product_to_response(product)

    def list_products(
        self,
        *,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> ProductListResponse:
        validate_pagination(page, limit)

        rows, total = self.repo.list(
            category=category,
            is_active=is_active,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return ProductListResponse(
            data=[product_to_response(p) for p in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )

    def list_active_products(self) -> List[ProductResponse]:
        return [product_to_response(p) for p in self.repo.list_active()]
