# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #
"""
Services Package - client-side services for UmbraDex

This package contains the business logic organized by domain:
- infrastructure: event bus, event types and observable state
- datastore: remote store contract plus the Supabase/PokeAPI implementations
- cache / pokedex: shared roster cache and the Pokedex read policy
- missions: reconciliation engine and mission board
- shop / inventory / profile / theme / teams / session: user features

Services receive their collaborators through the constructor; see
services.bootstrap for the composition root.
"""
