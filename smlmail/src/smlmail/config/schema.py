"""Pydantic models describing the smlmail runtime configuration."""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValidationError(ValueError):
    """Raised when configuration data does not satisfy the schema."""


DEFAULT_FALLBACK_PLAIN_TEXT = "This email contains SML content"
DEFAULT_SKIP_TYPES = (
    "Organization",
    "NewsMediaOrganization",
    "WebSite",
    "BreadcrumbList",
    "WebPage",
)
DEFAULT_URL_WHITELIST = (
    "www.spiegel.de",
    "cooking.nytimes.com",
    "nl.nytimes.com/f/cooking",
)


class ComposeConfig(BaseModel):
    """Defaults applied when encoding outbound structured messages."""

    model_config = ConfigDict(extra="forbid")

    variant: Literal["embedded_in_html", "dedicated_part"] = "dedicated_part"
    hide_timezone: bool = False
    fallback_plain_text: str = DEFAULT_FALLBACK_PLAIN_TEXT

    @field_validator("fallback_plain_text")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValidationError("fallback_plain_text must not be blank")
        return value


class CardsConfig(BaseModel):
    """Limits applied when loading remote cards."""

    model_config = ConfigDict(extra="forbid")

    max_cards: int = Field(default=5, gt=0)
    skip_types: List[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_TYPES))


class PathsConfig(BaseModel):
    """Filesystem layout used by share and calendar exports."""

    model_config = ConfigDict(extra="forbid")

    temp_dir: str


class HttpConfig(BaseModel):
    """Parameters for remote page fetches."""

    model_config = ConfigDict(extra="forbid")

    timeout_s: float = Field(default=10.0, gt=0)
    user_agent: str = "smlmail/0.1"


class ViewConfig(BaseModel):
    """Inbound message view options."""

    model_config = ConfigDict(extra="forbid")

    url_whitelist: List[str] = Field(default_factory=lambda: list(DEFAULT_URL_WHITELIST))
    show_source_buttons: bool = True


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``config.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    paths: PathsConfig
    compose: ComposeConfig = Field(default_factory=ComposeConfig)
    cards: CardsConfig = Field(default_factory=CardsConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)

    @classmethod
    def default(cls, temp_dir: str) -> "RuntimeConfig":
        """Return a configuration with every section at its default."""

        return cls(paths=PathsConfig(temp_dir=temp_dir))
