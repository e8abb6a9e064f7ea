from pydantic import BaseModel


class MessageOutput(BaseModel):
    message: str


class RegenerateKeyData(BaseModel):
    message: str
    new_registration_key: str
