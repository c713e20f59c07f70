from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @classmethod#every DTO maps its ORM model explicitly
    def from_orm_model(cls, orm_obj, **kwargs):
        """
        Subclasses override.
        """
        raise NotImplementedError(
            f"{cls.__name__}.from_orm_model() must be implemented"
        )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
