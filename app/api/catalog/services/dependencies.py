from fastapi import Depends
from sqlalchemy.orm import Session

from app.api.catalog.services.service_product import ProductService
from app.database.db_connection import get_db


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db)
