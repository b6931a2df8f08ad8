"""
API response schemas for the POS endpoints.
"""
from typing import Optional, Union
from pydantic import BaseModel


class PosProduct(BaseModel):
    """Product as exposed to third-party POS integrations."""
    id: str
    name: str
    price: Union[int, float] = 0
    category: str
    description: Optional[str] = None
    image_url: Optional[str] = None
