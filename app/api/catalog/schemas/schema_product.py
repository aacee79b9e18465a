"""
Schemas de Produtos
Preço sempre na menor unidade da moeda; no response vai como string.
"""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, constr


# ------ Requests de criação/edição ------
class CreateProductRequest(BaseModel):
    name: constr(min_length=1, max_length=200)
    price: int
    category: constr(min_length=1, max_length=100)
    is_active: bool = True


class UpdateProductRequest(BaseModel):
    name: Optional[constr(min_length=1, max_length=200)] = None
    price: Optional[int] = None
    category: Optional[constr(min_length=1, max_length=100)] = None
    is_active: Optional[bool] = None


# ------ Responses ------
class ProductResponse(BaseModel):
    id: int
    name: str
    price: str
    category: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductListResponse(BaseModel):
    data: List[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int
