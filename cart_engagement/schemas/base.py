"""Base schema configuration"""

from pydantic import BaseModel

class BaseSchema(BaseModel):
    """Base schema with common configuration"""
    
    class Config:
        from_attributes = True
        validate_assignment = True
