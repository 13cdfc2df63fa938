from database import Base
from sqlalchemy import Column, Integer, String, Boolean, Enum
import enum

class UserRole(enum.Enum):
    ADMIN = "admin"
    STORE_MANAGER = "store_manager"

class User(Base):
    """Directory of staff, mirrored from the identity provider."""
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    role = Column(Enum(UserRole), default=UserRole.STORE_MANAGER, nullable=False)
    company_id = Column(String, index=True)
    is_active = Column(Boolean, default=True)

    def __repr__(self):
        return f"<User(uid={self.uid}, role={self.role.value}, company_id={self.company_id})>"
