from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Marketplace payloads are camelCase; attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PageMeta(CamelModel):
    total: int = 0
    page: int = 1
    limit: int
    total_pages: int | None = None


class PartySummary(CamelModel):
    id: str | None = None
    full_name: str
    email: str | None = None
    phone: str | None = None
