from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, SecretStr


class StreamSettings(BaseModel):
    host: str = "www.deribit.com"
    port: int = Field(default=443, gt=0, le=65535)
    path: str = "/ws/api/v2"
    connect_timeout: float = Field(default=30, gt=0)
    tls_handshake_timeout: float = Field(default=30, gt=0)
    read_chunk_size: int = Field(default=65536, gt=0)
    max_message_size: int | None = Field(default=4 * 1024 * 1024, gt=0)
    ca_file: str | None = None

    model_config = {"extra": "forbid"}


class ApiCredentials(BaseModel):
    client_id: SecretStr
    client_secret: SecretStr

    model_config = {"extra": "forbid"}


class RestSettings(BaseModel):
    testnet: bool = True
    timeout: float = Field(default=10, gt=0)
    credentials: ApiCredentials | None = None

    model_config = {"extra": "forbid"}


class Settings(BaseModel):
    env: str = "dev"
    stream: StreamSettings = Field(default_factory=StreamSettings)
    rest: RestSettings = Field(default_factory=RestSettings)

    model_config = {"extra": "forbid"}

    def redacted(self) -> dict[str, Any]:
        data = self.model_dump(mode="json")
        creds = data.get("rest", {}).get("credentials")
        if isinstance(creds, dict):
            if "client_id" in creds:
                creds["client_id"] = "***"
            if "client_secret" in creds:
                creds["client_secret"] = "***"
        return data
