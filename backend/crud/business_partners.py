import logging
from typing import Optional
from sqlalchemy.orm import Session
from models.business_partners import BusinessPartner, PartnerStatus
from schemas.actor import ActorContext
from schemas.business_partners import BusinessPartnerCreate
from utils.errors import EntityNotFound, ValidationError

logger = logging.getLogger("business_partners")

def lookup_by_id(db: Session, partner_id: int, company_id: str) -> BusinessPartner:
    db_partner = db.query(BusinessPartner).filter(
        BusinessPartner.id == partner_id,
        BusinessPartner.company_id == company_id
    ).first()
    if db_partner is None:
        raise EntityNotFound(partner_id)
    return db_partner

def list_all(db: Session, company_id: str, is_customer: Optional[bool] = None, is_seller: Optional[bool] = None,
             skip: int = 0, limit: int = 100):
    query = db.query(BusinessPartner).filter(BusinessPartner.company_id == company_id)
    if is_customer is not None:
        query = query.filter(BusinessPartner.is_customer == is_customer)
    if is_seller is not None:
        query = query.filter(BusinessPartner.is_seller == is_seller)
    return query.order_by(BusinessPartner.name.asc()).offset(skip).limit(limit).all()

def quick_create(db: Session, partner: BusinessPartnerCreate, actor: ActorContext) -> BusinessPartner:
    """Create a customer/seller from the ledger screen with just a name and phone."""
    if not (partner.is_customer or partner.is_seller):
        raise ValidationError("A business partner must be a customer, a seller, or both.")
    existing = db.query(BusinessPartner).filter(
        BusinessPartner.name == partner.name,
        BusinessPartner.company_id == actor.company_id
    ).first()
    if existing:
        raise ValidationError("Business partner with this name already exists", details={"id": existing.id})

    db_partner = BusinessPartner(
        **partner.model_dump(),
        status=PartnerStatus.ACTIVE,
        company_id=actor.company_id,
        created_by_uid=actor.uid,
        created_by_name=actor.display_name,
    )
    db.add(db_partner)
    db.commit()
    db.refresh(db_partner)
    logger.info(f"Business partner '{db_partner.name}' created by user {actor.uid} for company {actor.company_id}")
    return db_partner
