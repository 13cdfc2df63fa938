from fastapi import Header
from utils.errors import ValidationError

def get_company_id(x_company_id: str = Header(...)) -> str:
    if not x_company_id or not x_company_id.strip():
        raise ValidationError("X-Company-ID header is missing")
    return x_company_id.strip()
