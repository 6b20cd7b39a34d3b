# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Data structures exchanged with the component that applies replica counts."""

from enum import Enum

from pydantic import BaseModel, Field


class ScaleStatus(str, Enum):
    """Status values for scaling operations"""

    SUCCESS = "success"
    ERROR = "error"


class TargetReplica(BaseModel):
    """Desired replica count of one StatefulSet"""

    namespace: str  # K8s namespace
    set_name: str  # K8s StatefulSet name
    desired_replicas: int = Field(ge=0)


class ScaleResponse(BaseModel):
    """Response from scaling operation"""

    status: ScaleStatus
    message: str
    target: TargetReplica
