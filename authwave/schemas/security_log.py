"""Security log schemas"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_validator


class SecurityLogResponse(BaseModel):
    """Schema for security log response"""

    log_id: str
    project_id: str
    user_id: Optional[str]
    event_code: str
    timestamp: datetime
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

    @model_validator(mode='before')
    @classmethod
    def map_log_metadata(cls, data):
        """Map the log_metadata attribute to the metadata field"""
        # Handle SQLAlchemy model objects
        if hasattr(data, '__dict__') and hasattr(data, 'log_metadata'):
            return {
                'log_id': data.log_id,
                'project_id': data.project_id,
                'user_id': data.user_id,
                'event_code': data.event_code,
                'timestamp': data.timestamp,
                'metadata': data.log_metadata,
            }
        return data


class SecurityLogPage(BaseModel):
    logs: List[SecurityLogResponse]
    page: int
    page_size: int
    total: int
