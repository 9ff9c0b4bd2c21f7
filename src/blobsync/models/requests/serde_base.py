from pydantic import BaseModel, ConfigDict


class SerdeBase(BaseModel):
    # Clients send extra fields (e.g. CryptoJS metadata); ignore them
    model_config = ConfigDict(extra="ignore")
