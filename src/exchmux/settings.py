from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from .exchanges.normalization import normalize_symbol


class ProxySettings(BaseModel):
    enabled: bool = False
    url: str | None = None
    username: str | None = None
    password: SecretStr | None = None

    model_config = {"extra": "forbid"}

    def as_dict(self) -> dict[str, Any] | None:
        if not self.enabled or not self.url:
            return None
        return {
            "url": self.url,
            "username": self.username,
            "password": self.password.get_secret_value() if self.password else None,
        }


class RuntimeSettings(BaseModel):
    max_workers: int = Field(default=8, ge=1)

    model_config = {"extra": "forbid"}


class ObserverSettings(BaseModel):
    interval: float = Field(default=1.0, gt=0)
    depth: int = Field(default=5, ge=1)
    max_age: float = Field(default=30.0, gt=0)

    model_config = {"extra": "forbid"}


class ExchangeCredentials(BaseModel):
    api_key: SecretStr
    api_secret: SecretStr

    model_config = {"extra": "forbid"}


class ExchangeSettings(BaseModel):
    enabled: bool = True
    sandbox: bool = False
    timeout: float = Field(default=10.0, gt=0)
    symbols: list[str] = Field(default_factory=list)
    credentials: ExchangeCredentials | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    @field_validator("symbols", mode="before")
    @classmethod
    def _split_symbols(cls, value: Any) -> Any:
        # env overrides arrive as "BTCUSDT,ETHUSDT"
        if isinstance(value, str):
            return [s for s in value.split(",") if s.strip()]
        return value

    @field_validator("symbols")
    @classmethod
    def _normalize_symbols(cls, value: list[str]) -> list[str]:
        return [normalize_symbol(s) for s in value]


class Settings(BaseModel):
    env: str = "dev"
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    observer: ObserverSettings = Field(default_factory=ObserverSettings)
    exchanges: dict[str, ExchangeSettings] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        for exch in data.get("exchanges", {}).values():
            creds = exch.get("credentials")
            if isinstance(creds, dict):
                if "api_key" in creds:
                    creds["api_key"] = "***"
                if "api_secret" in creds:
                    creds["api_secret"] = "***"
        proxy = data.get("proxy")
        if isinstance(proxy, dict) and proxy.get("password") is not None:
            proxy["password"] = "***"
        return data
