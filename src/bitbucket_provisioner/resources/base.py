"""Common base for declarative resources."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Resource(BaseModel):
    """A desired object, declared in YAML and owned by one handler.

    Subclasses set ``resource_type``; the engine addresses each instance as
    ``<resource_type>.<name>``.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]

    name: str = Field(pattern=r"^[a-zA-Z0-9_]+$")
    depends_on: list[str] = []

    @computed_field
    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.name}"
