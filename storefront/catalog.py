import logging
from typing import List

from .domain import Brand, Product
from .errors import BrandNotFound, ProductNotFound
from .ports import UnitOfWorkFactory

logger = logging.getLogger(__name__)


class CatalogService:
    """Single-row brand and product operations."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def create_brand(self, name: str) -> Brand:
        with self.uow_factory() as uow:
            brand = uow.brands.add(name)
            uow.commit()
        logger.info("brand %s created", brand.id)
        return brand

    def get_brand(self, brand_id: int) -> Brand:
        with self.uow_factory() as uow:
            brand = uow.brands.get(brand_id)
        if brand is None:
            raise BrandNotFound(brand_id)
        return brand

    def create_product(self, brand_id: int, name: str, qty: int, price: int) -> Product:
        with self.uow_factory() as uow:
            if uow.brands.get(brand_id) is None:
                raise BrandNotFound(brand_id)
            product = uow.products.add(brand_id, name, qty, price)
            uow.commit()
        logger.info("product %s created under brand %s", product.id, brand_id)
        return product

    def get_product(self, product_id: int) -> Product:
        with self.uow_factory() as uow:
            product = uow.products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def products_by_brand(self, brand_id: int) -> List[Product]:
        with self.uow_factory() as uow:
            return uow.products.list_by_brand(brand_id)
