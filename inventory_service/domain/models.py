from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import CheckConstraint, String, Integer, Numeric
from typing import Optional

class Base(DeclarativeBase):
    pass

class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
    )
    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), index=True)
    value: Mapped[float] = mapped_column(Numeric(10, 2))
    quantity: Mapped[int] = mapped_column(Integer)
    # Reorder threshold, stored only
    min_quantity: Mapped[int] = mapped_column("minQuantity", Integer)
    # Generated filename inside the upload directory
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
