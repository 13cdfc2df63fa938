from datetime import datetime
from sqlalchemy.orm import class_mapper
import pytz

from config import APP_TIMEZONE


def local_now():
    """Timezone-aware 'now' in the business timezone."""
    return datetime.now(pytz.timezone(APP_TIMEZONE))


def sqlalchemy_to_dict(obj):
    """Convert a SQLAlchemy object to a dictionary."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        # Convert datetime objects to ISO format strings
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        # Convert Decimal objects to strings so no cents are lost
        elif hasattr(value, 'normalize') and hasattr(value, 'from_float'):  # Check if it's a Decimal
            value = str(value)
        # Convert enum types to their values
        elif hasattr(value, 'name') and hasattr(value, 'value'):  # Check if it's an enum
            value = value.value
        result[c.key] = value
    return result

__all__ = ['local_now', 'sqlalchemy_to_dict']
