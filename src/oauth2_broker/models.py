"""Base Pydantic models for the OAuth2 broker.

This module provides the base model class that all broker models inherit from.
It establishes consistent configuration across all models:

- Strict field validation (no extra fields allowed)
- Immutable instances, so models can be shared between request threads

Example:
    >>> from oauth2_broker.models import ResponseObject
    >>> ResponseObject[bool](data=True).model_dump()
    {'data': True}
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class BrokerBaseModel(BaseModel):
    """Base model for all broker Pydantic models.

    - extra="forbid": Rejects any fields not defined in the model
    - frozen=True: Makes instances immutable for thread safety

    Models that need mutability (configuration being merged, for example)
    override ``model_config``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)


class ResponseObject(BrokerBaseModel, Generic[T]):
    """Uniform response envelope for structured (non-redirect) results."""

    data: T


__all__ = ["BrokerBaseModel", "ResponseObject"]
