# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""Guest-mode flag: a visitor without an account may only browse the Pokédex."""

import logging

from services.infrastructure.observable import ObservableValue

logger = logging.getLogger("umbra.session.guest")


class GuestSession:
    """Injectable guest-mode state, observable by the services that depend on it."""

    def __init__(self):
        self.is_guest_mode: ObservableValue[bool] = ObservableValue(False, name="is_guest_mode")

    def enable_guest_mode(self) -> None:
        if self.is_guest_mode.set(True):
            logger.info("Guest mode enabled")

    def disable_guest_mode(self) -> None:
        if self.is_guest_mode.set(False):
            logger.info("Guest mode disabled")

    def is_guest(self) -> bool:
        return self.is_guest_mode.value

    def clear(self) -> None:
        """Reset on logout."""
        self.is_guest_mode.set(False)
