class StorefrontError(Exception):
    """Base class for every failure the service reports to a caller."""


class ValidationError(StorefrontError):
    pass


class NotFound(StorefrontError):
    entity = "entity"

    def __init__(self, entity_id: int):
        super().__init__(f"{self.entity} {entity_id} not found")
        self.entity_id = entity_id


class UserNotFound(NotFound):
    entity = "user"


class BrandNotFound(NotFound):
    entity = "brand"


class ProductNotFound(NotFound):
    entity = "product"


class OrderNotFound(NotFound):
    entity = "order"


class InsufficientStock(StorefrontError):
    def __init__(self, product_id: int, requested: int):
        super().__init__(f"insufficient stock for product {product_id} (requested {requested})")
        self.product_id = product_id
        self.requested = requested


class StorageError(StorefrontError):
    pass
