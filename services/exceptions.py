#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
UmbraDex Core - Custom Exception Hierarchy
Structured error handling for all client-side services
"""

# ============================================================================
# BASE EXCEPTIONS
# ============================================================================

class UmbraBaseException(Exception):
    """
    Base exception for all UmbraDex errors.

    All custom exceptions inherit from this to allow catching all UmbraDex-specific errors.
    Includes structured error data support.
    """
    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self):
        """Convert exception to structured dictionary for logging/API responses."""
        return {
            'error': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details
        }


# ============================================================================
# CONFIGURATION EXCEPTIONS
# ============================================================================

class ConfigServiceError(UmbraBaseException):
    """Base exception for all configuration service errors."""

class ConfigLoadError(ConfigServiceError):
    """Raised when configuration loading fails."""


# ============================================================================
# DATA STORE EXCEPTIONS
# ============================================================================

class DataStoreError(UmbraBaseException):
    """Base exception for all remote data store errors."""

class RemoteNetworkError(DataStoreError):
    """Raised on transient remote failures (connection, timeout, 5xx)."""

class RemoteResponseError(DataStoreError):
    """Raised when the remote store answers with an error payload."""


# ============================================================================
# MISSION SERVICE EXCEPTIONS
# ============================================================================

class MissionServiceError(UmbraBaseException):
    """Base exception for all mission service errors."""

class MissionClaimError(MissionServiceError):
    """Base exception for a rejected reward claim."""

class ClaimAlreadyClaimedError(MissionClaimError):
    """Raised when the reward was already granted (claim race lost)."""

class ClaimNotEligibleError(MissionClaimError):
    """Raised when the mission is not active or its requirement is not met."""

class MissionCatalogError(MissionServiceError):
    """Raised when the mission catalog is misconfigured (e.g. prerequisite cycle)."""


# ============================================================================
# SHOP SERVICE EXCEPTIONS
# ============================================================================

class ShopServiceError(UmbraBaseException):
    """Base exception for all shop service errors."""

class InsufficientGoldError(ShopServiceError):
    """Raised when the user cannot afford an item."""

class ItemAlreadyOwnedError(ShopServiceError):
    """Raised when the user already owns an item."""

class PurchaseRollbackError(ShopServiceError):
    """Raised when a purchase failed after gold was spent and had to be refunded."""


# ============================================================================
# INVENTORY SERVICE EXCEPTIONS
# ============================================================================

class InventoryServiceError(UmbraBaseException):
    """Base exception for all inventory service errors."""

class InvalidEquipCategoryError(InventoryServiceError):
    """Raised when an item is equipped into an unknown slot."""

class ItemNotFoundError(InventoryServiceError):
    """Raised when an inventory item cannot be resolved by name."""
