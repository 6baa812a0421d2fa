from typing import Any, List, Optional, Union

from .base import CamelModel


class BuilderCreateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    logo_url: Optional[str] = None
    # Comma separated in the form, lists from API clients
    emails: Optional[Union[str, List[str]]] = None
    phones: Optional[Union[str, List[str]]] = None


class ProjectCreateRequest(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    builder_id: Optional[str] = None
    location_address: Optional[str] = None
    builder_website_link: Optional[str] = None
    brochure_url: Optional[str] = None
    banner_image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    highlights: Optional[List[str]] = None
    amenities: Optional[List[str]] = None
    image_urls: Optional[List[str]] = None
    walkthrough_video_url: Optional[str] = None


class ProjectArchiveRequest(CamelModel):
    # Left untyped so "true" or 1 can be rejected instead of coerced
    is_archived: Any = None
