# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Infrastructure Services - event bus and observable state
"""

from .event_manager import EventManager, EventTopic, Subscription
from .observable import ObservableValue

__all__ = [
    'EventManager', 'EventTopic', 'Subscription', 'ObservableValue'
]
