from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from crud import products as crud_products
from database import get_db
from schemas.actor import ActorContext
from schemas.products import Product, ProductCreate, ProductStockStatus
from utils.auth_utils import get_actor, require_admin

router = APIRouter(prefix="/products", tags=["Products"])

@router.post("/", response_model=Product, status_code=status.HTTP_201_CREATED)
def create_product(product: ProductCreate, db: Session = Depends(get_db), actor: ActorContext = Depends(require_admin)):
    return crud_products.create_product(db, product, actor)

@router.get("/", response_model=List[Product])
def read_products(
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_products.list_products(db, actor.company_id, search=search, skip=skip, limit=limit)

@router.get("/stock-status", response_model=List[ProductStockStatus])
def read_stock_status(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    products = crud_products.list_products(db, actor.company_id, search=search, limit=1000)
    return [
        ProductStockStatus(
            id=p.id,
            name=p.name,
            sku=p.sku,
            stock=p.stock,
            unit_of_measure=p.unit_of_measure,
            status=crud_products.stock_status(p.stock),
        )
        for p in products
    ]

@router.get("/{product_id}", response_model=Product)
def read_product(product_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return crud_products.get_by_id(db, product_id, actor.company_id)
