from typing import Any, BinaryIO, Callable, List, Optional, Tuple, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_service.core.logging_config import get_logger
from inventory_service.domain.models import Product
from inventory_service.infrastructure.storage import ImageStorage
from .errors import BusinessRuleError, InternalError, InvalidQuantityError, NotFoundError
from .validation import INT_MAX, ProductFields, parse_movement_quantity, validate_product_fields

logger = get_logger(__name__)

T = TypeVar("T")

# (original filename, readable stream) of an uploaded image
ImageUpload = Tuple[str, BinaryIO]

PRODUCT_NOT_FOUND = "Product not found."
INSUFFICIENT_STOCK = "The requested quantity exceeds the quantity in stock."
STOCK_LIMIT_EXCEEDED = "The requested quantity would exceed the maximum stock."


class InventoryService:
    def __init__(self, db: Session, storage: ImageStorage):
        self.db = db
        self.storage = storage

    def _run(self, operation: Callable[[], T], failure_message: str) -> T:
        """Run ``operation`` and commit; store errors roll back and become InternalError."""
        try:
            result = operation()
            self.db.commit()
            return result
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{failure_message} ({type(e).__name__})", exc_info=True)
            raise InternalError(failure_message) from e
        except Exception:
            self.db.rollback()
            raise

    def _store_image(self, image: Optional[ImageUpload], failure_message: str) -> Optional[str]:
        if image is None:
            return None
        original_name, stream = image
        try:
            return self.storage.save(original_name, stream)
        except OSError as e:
            logger.error(f"Could not store upload {original_name!r}", exc_info=True)
            raise InternalError(failure_message) from e

    def list(self) -> List[Product]:
        return self._run(
            lambda: list(self.db.scalars(select(Product).order_by(Product.name.asc()))),
            "Error fetching products, try again later!",
        )

    def create(self, name: Any, value: Any, quantity: Any, min_quantity: Any,
               image: Optional[ImageUpload] = None) -> Product:
        fields = validate_product_fields(name, value, quantity, min_quantity)
        failure = "Error adding product."
        filename = self._store_image(image, failure)

        product = Product(
            name=fields.name,
            value=fields.value,
            quantity=fields.quantity,
            min_quantity=fields.min_quantity,
            image=filename,
        )

        def insert() -> Product:
            self.db.add(product)
            self.db.flush()
            return product

        try:
            self._run(insert, failure)
        except Exception:
            self.storage.delete(filename)
            raise
        logger.info(f"Created product {product.id} ({product.name})")
        return product

    def update(self, product_id: int, name: Any, value: Any, quantity: Any, min_quantity: Any,
               image: Optional[ImageUpload] = None) -> None:
        fields: ProductFields = validate_product_fields(name, value, quantity, min_quantity)
        failure = "Error updating product"

        current = self._run(
            lambda: self.db.execute(select(Product.id, Product.image).where(Product.id == product_id)).first(),
            failure,
        )
        if current is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        previous_image = current.image

        filename = self._store_image(image, failure)
        changes = {
            "name": fields.name,
            "value": fields.value,
            "quantity": fields.quantity,
            "min_quantity": fields.min_quantity,
        }
        if filename:
            changes["image"] = filename

        statement = (
            update(Product)
            .where(Product.id == product_id)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        try:
            rowcount = self._run(lambda: self.db.execute(statement).rowcount, failure)
        except Exception:
            self.storage.delete(filename)
            raise
        if rowcount == 0:
            self.storage.delete(filename)
            raise NotFoundError(PRODUCT_NOT_FOUND)

        if filename and previous_image and previous_image != filename:
            self.storage.delete(previous_image)
        logger.info(f"Updated product {product_id}")

    def delete(self, product_id: int) -> None:
        failure = "Error deleting product."
        product = self._run(lambda: self.db.get(Product, product_id), failure)
        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        image = product.image
        self._run(lambda: self.db.delete(product), failure)
        self.storage.delete(image)
        logger.info(f"Deleted product {product_id}")

    def stock_in(self, product_id: int, quantity: Any) -> None:
        amount = parse_movement_quantity(quantity)
        if amount is None:
            raise InvalidQuantityError()

        statement = (
            update(Product)
            .where(Product.id == product_id, Product.quantity <= INT_MAX - amount)
            .values(quantity=Product.quantity + amount)
            .execution_options(synchronize_session=False)
        )

        def increment() -> Tuple[int, bool]:
            rowcount = self.db.execute(statement).rowcount
            return rowcount, rowcount > 0 or self._exists(product_id)

        rowcount, exists = self._run(increment, "Error registering stock entry.")
        if not exists:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        if rowcount == 0:
            raise BusinessRuleError(STOCK_LIMIT_EXCEEDED)
        logger.info(f"Stock entry of {amount} for product {product_id}")

    def stock_out(self, product_id: int, quantity: Any) -> None:
        amount = parse_movement_quantity(quantity)
        if amount is None:
            raise InvalidQuantityError()

        # Check and decrement in one statement so concurrent exits cannot overdraw
        statement = (
            update(Product)
            .where(Product.id == product_id, Product.quantity >= amount)
            .values(quantity=Product.quantity - amount)
            .execution_options(synchronize_session=False)
        )

        def decrement() -> Tuple[int, bool]:
            rowcount = self.db.execute(statement).rowcount
            return rowcount, rowcount > 0 or self._exists(product_id)

        rowcount, exists = self._run(decrement, "Error registering stock exit.")
        if not exists:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        if rowcount == 0:
            raise BusinessRuleError(INSUFFICIENT_STOCK)
        logger.info(f"Stock exit of {amount} for product {product_id}")

    def _exists(self, product_id: int) -> bool:
        return self.db.scalar(select(Product.id).where(Product.id == product_id)) is not None
