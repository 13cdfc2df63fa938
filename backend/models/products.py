from sqlalchemy import Column, Integer, String, Numeric, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin

class Product(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint('company_id', 'sku', name='_company_product_sku_uc'),
        CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
    )

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(String, index=True)
    name = Column(String, nullable=False)
    sku = Column(String, nullable=False)
    numeric_price = Column(Numeric(12, 2), default=0, nullable=False)
    stock = Column(Integer, default=0, nullable=False)  # only the ledger engine writes this
    unit_of_measure = Column(String, nullable=False, default="pcs")
    version = Column(Integer, nullable=False)

    audits = relationship("ProductStockAudit", back_populates="product")

    __mapper_args__ = {"version_id_col": version}
