"""Location record contract consumed by the mapping application."""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, ValidationError, field_validator

from zwm_import.common.models import Violation

Longitude = Annotated[float, Field(ge=-180, le=180)]
Latitude = Annotated[float, Field(ge=-90, le=90)]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Image(_Strict):
    src: HttpUrl
    uuid: UUID


class PointGeometry(_Strict):
    type: Literal["Point"]
    coordinates: tuple[Longitude, Latitude]


class Meta(_Strict):
    contact: list[str]
    openingDate: date | None = None

    @field_validator("openingDate", mode="before")
    @classmethod
    def _omit_rather_than_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("openingDate must be omitted when unknown")
        return value


class Address(_Strict):
    zip: str = Field(min_length=1)
    countryCode: str = Field(pattern=r"^[A-Z]{2}$")


class LocationRecord(_Strict):
    image: Image | None = None
    name: str = Field(min_length=1, pattern=r"\S")
    geometry: PointGeometry
    meta: Meta
    address: Address


def _field_path(loc: tuple[Any, ...]) -> str:
    if not loc:
        return "(root)"
    return ".".join(str(part) for part in loc)


class LocationValidator:
    def __init__(self, schema: type[BaseModel] = LocationRecord) -> None:
        self.schema = schema

    def validate(self, record: dict[str, Any]) -> list[Violation]:
        try:
            self.schema.model_validate(record)
        except ValidationError as exc:
            return [
                Violation(field_path=_field_path(tuple(error["loc"])), message=error["msg"])
                for error in exc.errors()
            ]
        return []
