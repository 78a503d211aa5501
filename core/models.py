"""Pydantic models describing the manifest document."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ManifestResource(BaseModel):
    """A single resource entry; callbacks may add extra keys."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str = Field(..., description="Resource kind and schema version (e.g. azure.bicep.v0).")

    def to_entry(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BicepManifestResource(ManifestResource):
    """Entry written for resources deployed through a Bicep module."""

    type: str = "azure.bicep.v0"
    connection_string: Optional[str] = Field(
        default=None,
        alias="connectionString",
        description="Placeholder expression resolved at deployment time.",
    )
    path: str = Field(..., description="Bicep module path relative to the manifest.")
    params: Dict[str, str] = Field(default_factory=dict)


class ContainerManifestResource(ManifestResource):
    type: str = "container.v0"
    image: str


class ManifestDocument(BaseModel):
    resources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump()
