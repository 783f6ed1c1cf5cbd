# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base Pydantic model with common configuration.

    Immutable models for reconciliation records. State transitions
    (calculate, record payments, finalize) produce new instances through
    ``model_copy``; nothing is mutated in place.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,  # Records are snapshots; transitions return new instances
        extra="forbid",  # Catches typos and missing field definitions immediately
    )


class RecordModel(Model):
    """Model for rows supplied by external storage.

    Persistence rows carry bookkeeping columns (``id``, ``created_by``,
    ``updated_at`` ...) that the engine has no use for; they are dropped
    instead of rejected.
    """

    model_config = ConfigDict(extra="ignore")
