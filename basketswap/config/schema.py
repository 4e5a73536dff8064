from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ZeroExConfig(BaseModel):
    api_key: str | None = None
    rate_per_sec: int = Field(5, ge=1)
    rate_per_min: int = Field(110, ge=1)


class ParaSwapConfig(BaseModel):
    base_url: str = "https://apiv5.paraswap.io"
    partner: str = "basketswap"
    excluded_dexs: List[str] = Field(default_factory=lambda: ["0x"])


class BasketSwapConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    coalesce_window_ms: float = Field(30.0, ge=0.0)
    dust_threshold: int = Field(0, ge=0)
    http_timeout_sec: float = Field(10.0, gt=0.0)
    excluded_sources: List[str] = Field(default_factory=list)
    zeroex: ZeroExConfig = Field(default_factory=ZeroExConfig)
    paraswap: ParaSwapConfig = Field(default_factory=ParaSwapConfig)

    @field_validator("excluded_sources", mode="before")
    @classmethod
    def _split_sources(cls, value: object) -> object:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @property
    def coalesce_window_sec(self) -> float:
        return self.coalesce_window_ms / 1000.0


__all__ = ["BasketSwapConfig", "ParaSwapConfig", "ZeroExConfig"]
