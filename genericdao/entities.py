from typing import ClassVar

from pydantic import BaseModel
from pydantic.config import ConfigDict


class BaseEntity(BaseModel):
    """Base entity class for all mapped tables.

    Subclasses must give every field a default so the mapper can build an
    empty instance before filling it from a row.

    Usage:
        class Person(BaseEntity):
            name: str = ""
            age: int = 0
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(use_enum_values=True)
    id: int = 0
