"""
Feed Schemas - Pydantic validation of raw token feed entries.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from token_exporter.models import RawTokenRecord


# =============================================================
# FEED ENTRY
# =============================================================

class FeedTokenSchema(BaseModel):
    """One element of the token feed JSON array."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    symbol: str
    name: str
    decimals: Optional[int] = Field(default=None, ge=0)
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    platforms: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("platforms", mode="before")
    @classmethod
    def _platforms_or_empty(cls, value):
        # Some feed entries carry null or [] instead of an object
        if value is None or value == []:
            return {}
        return value

    @field_validator("logo_uri")
    @classmethod
    def _blank_logo_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    def to_record(self) -> RawTokenRecord:
        return RawTokenRecord(
            symbol=self.symbol,
            name=self.name,
            platforms=dict(self.platforms),
            decimals=self.decimals,
            logo_uri=self.logo_uri,
        )
