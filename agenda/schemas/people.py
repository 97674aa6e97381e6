from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Patient(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    first_name: str
    last_name: str
    phone: str | None = None
    email: str | None = None
    birth_date: date | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Dentist(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    first_name: str
    last_name: str
    full_name: str | None = None
    specialty: str | None = None

    @property
    def display_name(self) -> str:
        name = self.full_name or f"{self.first_name} {self.last_name}".strip()
        if self.specialty:
            return f"{name} - {self.specialty}"
        return name
