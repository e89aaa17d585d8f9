from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    service: str
    timestamp: str


class EndpointIndex(BaseModel):
    health: str = "/health"
    vectorize: str = "/vectorize (POST)"


class ServiceDescriptor(BaseModel):
    message: str
    endpoints: EndpointIndex = Field(default_factory=EndpointIndex)


class ErrorResponse(BaseModel):
    error: str
    message: str
    status: int | None = None
