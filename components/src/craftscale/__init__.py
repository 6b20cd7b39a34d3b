# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Autoscaling planner for game-server StatefulSets driven by live player counts."""

__version__ = "0.1.0"
