# utils/json_provider.py
from datetime import date, datetime
from enum import Enum
from flask.json.provider import DefaultJSONProvider

class CustomJSONProvider(DefaultJSONProvider):
    """Custom JSON provider: ISO 8601 datetimes, YYYY-MM-DD dates, enum values"""
    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.strftime('%Y-%m-%d')
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)
