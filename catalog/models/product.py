from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from catalog.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("qty >= 1", name="ck_products_qty_min"),
        CheckConstraint("price >= 100", name="ck_products_price_min"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(32), nullable=False)
    category = Column(String(16), nullable=False, index=True)
    qty = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    sku = Column(String(32), nullable=False, index=True)
    file_id = Column(String(36), ForeignKey("files.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', sku='{self.sku}')>"
