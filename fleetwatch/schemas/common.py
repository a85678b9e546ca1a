from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python-side snake_case fields, camelCase on the wire (the dashboard contract)"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
