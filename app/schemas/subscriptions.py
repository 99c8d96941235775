from pydantic import BaseModel


class CreateSubscriptionRequest(BaseModel):
    name: str
    email: str


class CreateSubscriptionResponse(BaseModel):
    subscription_id: str


class RazorpayKeyResponse(BaseModel):
    key_id: str | None = None
