from sqlalchemy.orm import Session
from models.users import User, UserRole
from schemas.actor import ActorContext

def get_user(db: Session, uid: str):
    return db.query(User).filter(User.uid == uid).first()

def sync_user(db: Session, actor: ActorContext, email: str = None):
    """Mirror the identity provider's view of the actor into the users table."""
    db_user = get_user(db, actor.uid)
    if db_user is None:
        db_user = User(uid=actor.uid, display_name=actor.display_name, email=email,
                       role=actor.role, company_id=actor.company_id)
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    elif (db_user.display_name, db_user.role, db_user.company_id) != (actor.display_name, actor.role, actor.company_id):
        db_user.display_name = actor.display_name
        db_user.role = actor.role
        db_user.company_id = actor.company_id
        db.commit()
    return db_user

def list_admin_uids(db: Session, company_id: str):
    rows = db.query(User.uid).filter(
        User.company_id == company_id,
        User.role == UserRole.ADMIN,
        User.is_active.is_(True)
    ).all()
    return [row.uid for row in rows]
