"""
Models do bounded context de Catálogo.
"""
from .model_product import ProductModel

__all__ = ["ProductModel"]
