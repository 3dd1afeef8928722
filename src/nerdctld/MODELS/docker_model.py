"""
Base model for documents returned by the Docker Engine API.
"""
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_pascal

class DockerModel(BaseModel):
    """
    Response document with Docker's PascalCase field names.

    Fields Docker tags ``omitempty`` are declared ``Optional`` with a ``None``
    default and vanish from the output; every other field always has a value.
    Fields whose Docker name does not follow plain PascalCase (``Id``, ``NCPU``)
    carry an explicit alias.
    """
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        """
        Serializes the model the way the Docker daemon does.

        :return: A JSON-compatible dictionary.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
