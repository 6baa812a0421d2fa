from typing import Optional

from .base import CamelModel


class InterestRequest(CamelModel):
    project_id: Optional[str] = None
    property_id: Optional[str] = None
    message: Optional[str] = None
