from pydantic import BaseModel
from models.users import UserRole

class ActorContext(BaseModel):
    """Who is acting, passed explicitly into every engine call."""
    uid: str
    display_name: str
    role: UserRole
    company_id: str

    @property
    def is_privileged(self) -> bool:
        return self.role == UserRole.ADMIN
