import logging
from typing import Dict, Iterable, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import LOW_STOCK_THRESHOLD
from models.products import Product
from models.product_stock_audit import ProductStockAudit
from schemas.actor import ActorContext
from schemas.products import ProductCreate
from utils import local_now
from utils.errors import InsufficientStock, ProductNotFound, ValidationError

logger = logging.getLogger("products")

IN_STOCK = "In Stock"
LOW_STOCK = "Low Stock"
OUT_OF_STOCK = "Out of Stock"

def get_by_id(db: Session, product_id: int, company_id: str, for_update: bool = False) -> Product:
    query = db.query(Product).filter(Product.id == product_id, Product.company_id == company_id)
    if for_update:
        query = query.with_for_update()
    db_product = query.first()
    if db_product is None:
        raise ProductNotFound(product_id)
    return db_product

def lock_products(db: Session, product_ids: Iterable[int], company_id: str) -> Dict[int, Product]:
    """Load and row-lock products, always in id order so two writers never deadlock."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = db.query(Product).filter(
        Product.id.in_(ids),
        Product.company_id == company_id
    ).order_by(Product.id).with_for_update().all()
    return {row.id: row for row in rows}

def update_stock(db: Session, product: Product, new_stock: int, actor: ActorContext, change_type: str,
                 note: Optional[str] = None, ledger_entry_id: Optional[int] = None) -> Product:
    """Set a product's stock and record the movement. Only the ledger engine calls this."""
    old_stock = product.stock
    if new_stock < 0:
        raise InsufficientStock(product.name, old_stock, old_stock - new_stock)
    if new_stock == old_stock:
        return product

    product.stock = new_stock
    product.updated_at = local_now()
    product.updated_by_uid = actor.uid
    product.updated_by_name = actor.display_name
    db.add(ProductStockAudit(
        product_id=product.id,
        ledger_entry_id=ledger_entry_id,
        change_type=change_type,
        change_amount=new_stock - old_stock,
        old_quantity=old_stock,
        new_quantity=new_stock,
        changed_by=actor.uid,
        note=note,
        company_id=product.company_id,
    ))
    logger.debug(f"Stock for product {product.id} changed {old_stock} -> {new_stock} ({change_type})")
    return product

def list_products(db: Session, company_id: str, search: Optional[str] = None, skip: int = 0, limit: int = 100):
    query = db.query(Product).filter(Product.company_id == company_id)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(term), Product.sku.ilike(term)))
    return query.order_by(Product.name.asc()).offset(skip).limit(limit).all()

def stock_status(stock: int) -> str:
    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= LOW_STOCK_THRESHOLD:
        return LOW_STOCK
    return IN_STOCK

def create_product(db: Session, product: ProductCreate, actor: ActorContext) -> Product:
    existing = db.query(Product).filter(Product.sku == product.sku, Product.company_id == actor.company_id).first()
    if existing:
        raise ValidationError(f"A product with SKU '{product.sku}' already exists", details={"id": existing.id})

    db_product = Product(
        **product.model_dump(),
        company_id=actor.company_id,
        created_by_uid=actor.uid,
        created_by_name=actor.display_name,
    )
    db.add(db_product)
    db.flush()
    if db_product.stock:
        db.add(ProductStockAudit(
            product_id=db_product.id,
            change_type="initial",
            change_amount=db_product.stock,
            old_quantity=0,
            new_quantity=db_product.stock,
            changed_by=actor.uid,
            note="Opening stock",
            company_id=actor.company_id,
        ))
    db.commit()
    db.refresh(db_product)
    logger.info(f"Product '{db_product.name}' ({db_product.sku}) created by user {actor.uid} for company {actor.company_id}")
    return db_product
