"""Shared base for runner events and report records."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model; attempts and records are never changed once built.

    Unknown keys sent by newer runners are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")
