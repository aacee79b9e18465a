from fastapi import APIRouter

from app.api.catalog.router import router_products

router = APIRouter()

router.include_router(router_products.router)
