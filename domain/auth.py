"""Domain Entities - Actor identity"""
from pydantic import BaseModel


class Actor(BaseModel):
    """Caller identity as an opaque reference.

    privileged is granted by the authorization collaborator to operators
    (support staff, the payment gateway) acting on bookings they are not a
    party to.
    """
    actor_ref: str
    privileged: bool = False

    class Config:
        frozen = True
