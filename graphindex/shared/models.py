from pydantic import BaseModel, ConfigDict


class GraphIndexBaseModel(BaseModel):
    model_config = ConfigDict(
        protected_namespaces=(),
        arbitrary_types_allowed=True,
    )
