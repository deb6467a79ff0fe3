from pydantic import BaseModel


class ServiceStatusResponse(BaseModel):
    message: str
    db_connected: bool
    redis_connected: bool
