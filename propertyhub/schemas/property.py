from typing import Any, List, Optional

from pydantic import ConfigDict

from .base import CamelModel


class LocationInput(CamelModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zipcode: Optional[str] = None
    locality: Optional[str] = None


class PropertyFormRequest(CamelModel):
    # Every field is optional here so required-field checks can answer with
    # the "Missing required fields" message instead of a validation error.
    title: Optional[str] = None
    property_type: Optional[str] = None
    listing_type: Optional[str] = None
    project_id: Optional[str] = None
    builder_id: Optional[str] = None
    bedrooms: Optional[Any] = None
    bathrooms: Optional[Any] = None
    property_size: Optional[Any] = None
    property_size_unit: Optional[str] = None
    plot_size: Optional[Any] = None
    plot_size_unit: Optional[str] = None
    facing: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Any] = None
    location: Optional[LocationInput] = None
    image_urls: Optional[List[str]] = None
    thumbnail_url: Optional[str] = None
    walkthrough_video_urls: Optional[List[str]] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "3BHK in Gachibowli",
                "propertyType": "APARTMENT",
                "listingType": "SALE",
                "bedrooms": "3",
                "bathrooms": "2",
                "propertySize": "1500",
                "propertySizeUnit": "sq_ft",
                "price": "12500000",
                "location": {"address": "Road No. 2, Gachibowli, Hyderabad", "city": "Hyderabad", "state": "Telangana"},
            }
        }
    )


class MarkSoldRequest(CamelModel):
    sold_to: Optional[str] = None
    sold_to_user_id: Optional[str] = None


class ToggleFavoriteRequest(CamelModel):
    property_id: Optional[str] = None
