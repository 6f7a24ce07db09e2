from pydantic import BaseModel
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Accepts camelCase (wire) or snake_case (python) field names"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
