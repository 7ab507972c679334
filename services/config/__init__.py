# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Config Services Package - client configuration loading
"""

from .config_service import ClientConfig, load_config

__all__ = [
    'ClientConfig', 'load_config'
]
