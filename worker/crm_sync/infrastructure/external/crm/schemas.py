"""
Esquemas explicitos de las respuestas del CRM.

Los property bags del CRM vienen como strings sueltos y a veces vacios; aqui se
define, por entidad, que campos se leen y como se normalizan antes de entrar al
dominio.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from crm_sync.domain.entities.record import Record, SearchPage
from crm_sync.shared.utils.datetime_utils import parse_instant


class RecordSchema(BaseModel):
    """Objeto CRM tal como llega en `results` de una busqueda."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    properties: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return str(value) if value is not None else value

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_default(cls, value: Any) -> Any:
        return value or {}

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _parse_instant(cls, value: Any) -> Any:
        return parse_instant(value)

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            properties=dict(self.properties),
        )


class PagingNextSchema(BaseModel):
    after: Optional[str] = None

    @field_validator("after", mode="before")
    @classmethod
    def _after_as_str(cls, value: Any) -> Any:
        return str(value) if value is not None else None


class PagingSchema(BaseModel):
    next: Optional[PagingNextSchema] = None


class SearchResponseSchema(BaseModel):
    """Respuesta de `/crm/v3/objects/{tipo}/search`."""

    model_config = ConfigDict(extra="ignore")

    results: List[RecordSchema] = Field(default_factory=list)
    paging: Optional[PagingSchema] = None

    def to_page(self) -> SearchPage:
        next_after = None
        if self.paging and self.paging.next:
            next_after = self.paging.next.after
        return SearchPage(
            results=[r.to_record() for r in self.results],
            next_after=next_after,
        )


class AssociationRefSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return str(value) if value is not None else value


class AssociationResultSchema(BaseModel):
    """Entrada de un batch read de asociaciones: `{from: {id}, to: [{id}, ...]}`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_: Optional[AssociationRefSchema] = Field(default=None, alias="from")
    to: List[AssociationRefSchema] = Field(default_factory=list)


class AssociationBatchResponseSchema(BaseModel):
    results: List[AssociationResultSchema] = Field(default_factory=list)


class AssociationListResponseSchema(BaseModel):
    results: List[AssociationRefSchema] = Field(default_factory=list)


class TokenResponseSchema(BaseModel):
    """
    Respuesta del grant refresh_token.

    El endpoint OAuth responde en snake_case; el SDK oficial lo expone en
    camelCase. Se aceptan ambos.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(validation_alias=AliasChoices("access_token", "accessToken"))
    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refresh_token", "refreshToken")
    )
    expires_in: int = Field(validation_alias=AliasChoices("expires_in", "expiresIn"))


# ---------------------------------------------------------------------------
# Property bags por entidad
# ---------------------------------------------------------------------------


class _PropertiesSchema(BaseModel):
    """Base: ignora propiedades no declaradas y trata '' como ausente."""

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return value if value.strip() else None
        return str(value)


class OrganizationPropertiesSchema(_PropertiesSchema):
    name: Optional[str] = None
    domain: Optional[str] = None
    country: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    annualrevenue: Optional[str] = None
    numberofemployees: Optional[str] = None
    hs_lead_status: Optional[str] = None


class PersonPropertiesSchema(_PropertiesSchema):
    email: Optional[str] = None
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    jobtitle: Optional[str] = None
    hubspotscore: Optional[str] = None
    hs_lead_status: Optional[str] = None
    hs_analytics_source: Optional[str] = None
    hs_latest_source: Optional[str] = None


class MeetingPropertiesSchema(_PropertiesSchema):
    hs_meeting_title: Optional[str] = None
    hs_meeting_body: Optional[str] = None
    hs_meeting_start_time: Optional[str] = None
    hs_meeting_end_time: Optional[str] = None
    hs_timestamp: Optional[str] = None
    hs_meeting_outcome: Optional[str] = None


class ContactEmailSchema(_PropertiesSchema):
    email: Optional[str] = None
