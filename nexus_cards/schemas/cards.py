"""Card and component schemas."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CardStatus = Literal["DRAFT", "PUBLISHED", "ARCHIVED"]
ComponentKind = Literal[
    "PROFILE",
    "ABOUT",
    "CONTACT",
    "SOCIAL_LINKS",
    "CUSTOM_LINKS",
    "GALLERY",
    "VIDEO",
    "CALENDAR",
    "TESTIMONIALS",
    "SERVICES",
    "FORM",
]


class CardCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    template_id: Optional[str] = None
    theme: Optional[dict[str, Any]] = None
    social_links: Optional[dict[str, str]] = None
    status: Optional[CardStatus] = None


class CardUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    company: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    website: Optional[str] = Field(None, max_length=200)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    template_id: Optional[str] = None
    theme: Optional[dict[str, Any]] = None
    social_links: Optional[dict[str, str]] = None
    status: Optional[CardStatus] = None


class SocialLinks(BaseModel):
    social_links: dict[str, str] = Field(default_factory=dict)


class StylingUpdate(BaseModel):
    background_type: Optional[Literal["solid", "gradient", "image"]] = None
    background_color: Optional[str] = Field(None, max_length=50)
    background_image: Optional[str] = None
    layout: Optional[Literal["centered", "image-first", "compact"]] = None
    font_family: Optional[str] = Field(None, max_length=100)
    font_size: Optional[Literal["S", "M", "L", "XL"]] = None
    border_radius: Optional[str] = Field(None, max_length=16)
    shadow_preset: Optional[Literal["none", "sm", "md", "lg"]] = None


class CustomCssUpdate(BaseModel):
    custom_css: Optional[str] = None


class PublicCardOut(BaseModel):
    """Card fields safe to expose to anonymous visitors."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    status: str
    first_name: str
    last_name: str
    job_title: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    template_id: Optional[str] = None
    theme: dict[str, Any] = Field(default_factory=dict)
    social_links: dict[str, str] = Field(default_factory=dict)
    background_type: Optional[str] = None
    background_color: Optional[str] = None
    background_image: Optional[str] = None
    layout: Optional[str] = None
    font_family: Optional[str] = None
    font_size: Optional[str] = None
    border_radius: Optional[str] = None
    shadow_preset: Optional[str] = None
    custom_css: Optional[str] = None
    view_count: int = 0


class CardOut(PublicCardOut):
    user_id: str
    last_viewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ComponentCreate(BaseModel):
    type: ComponentKind
    order: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None
    config: Optional[dict[str, Any]] = None
    background_type: Optional[Literal["solid", "gradient", "image"]] = None
    background_color: Optional[str] = Field(None, max_length=50)
    background_gradient_start: Optional[str] = Field(None, max_length=50)
    background_gradient_end: Optional[str] = Field(None, max_length=50)
    background_image_url: Optional[str] = None


class ComponentUpdate(BaseModel):
    order: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None
    config: Optional[dict[str, Any]] = None
    background_type: Optional[Literal["solid", "gradient", "image"]] = None
    background_color: Optional[str] = Field(None, max_length=50)
    background_gradient_start: Optional[str] = Field(None, max_length=50)
    background_gradient_end: Optional[str] = Field(None, max_length=50)
    background_image_url: Optional[str] = None


class ReorderItem(BaseModel):
    id: str
    order: int = Field(..., ge=0)


class ReorderRequest(BaseModel):
    components: list[ReorderItem] = Field(..., min_length=1)


class ComponentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    card_id: str
    type: str
    order: int
    enabled: bool
    config: dict[str, Any] = Field(default_factory=dict)
    background_type: Optional[str] = None
    background_color: Optional[str] = None
    background_gradient_start: Optional[str] = None
    background_gradient_end: Optional[str] = None
    background_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicComponentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    order: int
    config: dict[str, Any] = Field(default_factory=dict)
    background_type: Optional[str] = None
    background_color: Optional[str] = None
    background_gradient_start: Optional[str] = None
    background_gradient_end: Optional[str] = None
    background_image_url: Optional[str] = None


class PublicCardResponse(BaseModel):
    card: PublicCardOut
    components: list[PublicComponentOut]


class AvailableComponents(BaseModel):
    tier: str
    allowed_types: list[str]
    max_components: int


class LinkClick(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    label: Optional[str] = Field(None, max_length=200)
