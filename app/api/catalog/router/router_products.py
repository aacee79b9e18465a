# app/api/catalog/router/router_products.py
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.api.catalog.schemas.schema_product import (
    CreateProductRequest,
    ProductListResponse,
    ProductResponse,
    UpdateProductRequest,
)
from app.api.catalog.services.dependencies import get_product_service
from app.api.catalog.services.service_product import ProductService
from app.config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.utils.logger import logger

router = APIRouter(prefix="/api/products", tags=["Catalogo - Produtos"])


# ---------- Endpoints ----------
@router.get(
    "",
    response_model=ProductListResponse,
    summary="Lista produtos",
    description="Filtra por categoria, ativo e termo de busca (nome, sem diferenciar maiúsculas).",
)
def list_products(
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Termo de busca no nome"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    svc: ProductService = Depends(get_product_service),
):
    logger.info(f"[Produtos] Listar - categoria={category} ativo={is_active} search={search} page={page}")
    return svc.list_products(category=category, is_active=is_active, search=search, page=page, limit=limit)


@router.get("/menu", response_model=List[ProductResponse], summary="Cardápio (somente produtos ativos)")
def list_active_products(svc: ProductService = Depends(get_product_service)):
    return svc.list_active_products()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: CreateProductRequest = Body(...),
    svc: ProductService = Depends(get_product_service),
):
    return svc.create_product(payload)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int = Path(...),
    svc: ProductService = Depends(get_product_service),
):
    return svc.get_product(product_id)


@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int = Path(...),
    payload: UpdateProductRequest = Body(...),
    svc: ProductService = Depends(get_product_service),
):
    return svc.update_product(product_id, payload)


@router.delete("/{product_id}", response_model=ProductResponse, summary="Desativa o produto (exclusão lógica)")
def deactivate_product(
    product_id: int = Path(...),
    svc: ProductService = Depends(get_product_service),
):
    return svc.deactivate_product(product_id)
