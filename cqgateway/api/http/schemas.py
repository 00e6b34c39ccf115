"""Request body models for the REST endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    input: str = Field(min_length=1)
    query: str | None = None
    format: Literal["json", "raw", "pretty"] | None = None
    ada: bool | None = None


class AddressRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(min_length=1)
    # "json" would shadow BaseModel.json, hence the alias.
    as_json: bool = Field(default=True, alias="json")


class ValidateRequest(BaseModel):
    input: str = Field(min_length=1)
