from typing import Optional

from .base import CamelModel


class SignupRequest(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    password: Optional[str] = None
    is_agent: Optional[bool] = False
    company_name: Optional[str] = None
    image_link: Optional[str] = None


class ContactRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None
