from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from crud import business_partners as crud_business_partners
from database import get_db
from schemas.actor import ActorContext
from schemas.business_partners import BusinessPartner, BusinessPartnerCreate
from utils.auth_utils import get_actor

router = APIRouter(prefix="/business-partners", tags=["Business Partners"])
logger = logging.getLogger("business_partners")

@router.post("/", response_model=BusinessPartner, status_code=status.HTTP_201_CREATED)
def create_business_partner(
    partner: BusinessPartnerCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_business_partners.quick_create(db, partner, actor)

@router.get("/", response_model=List[BusinessPartner])
def read_business_partners(
    skip: int = 0,
    limit: int = 100,
    is_customer: Optional[bool] = Query(None),
    is_seller: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor)
):
    return crud_business_partners.list_all(
        db, actor.company_id, is_customer=is_customer, is_seller=is_seller, skip=skip, limit=limit
    )

@router.get("/{partner_id}", response_model=BusinessPartner)
def read_business_partner(partner_id: int, db: Session = Depends(get_db), actor: ActorContext = Depends(get_actor)):
    return crud_business_partners.lookup_by_id(db, partner_id, actor.company_id)
